#!/usr/bin/env python
# -*- coding: utf-8 -*-
##    Copyright 2013-2014 Rasmus Scholer Sorensen, rasmusscholer@gmail.com
##
##    This program is free software: you can redistribute it and/or modify
##    it under the terms of the GNU General Public License as published by
##    the Free Software Foundation, either version 3 of the License, or
##    (at your option) any later version.
##
##    This program is distributed in the hope that it will be useful,
##    but WITHOUT ANY WARRANTY; without even the implied warranty of
##    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
##    GNU General Public License for more details.
##
##    You should have received a copy of the GNU General Public License
##
# pylint: disable=C0103,C0111,W0621,W0212

import pytest
from datetime import datetime
from lxml import etree
import logging
logger = logging.getLogger(__name__)


#### SUT ####
from highpack.model.backpack.client import (BackpackClient, backpack_call, node_to_plist, tags_payload,
                                            reminder_payload)
from highpack.model.server.abstract_rest_client import ServiceError

## Test doubles:
from highpack.model.model_testdoubles.fake_confighandler import FakeConfighandler
from highpack.model.model_testdoubles.fake_session import fake_session, load_testdata


@pytest.fixture
def session():
    return fake_session(highrise=False)

@pytest.fixture
def backpack(session):
    return BackpackClient(confighandler=FakeConfighandler(), session=session)


def sent_request(session):
    """ Returns (url, parsed request body) of the last request. """
    _, url, kwargs = session.LastRequest
    return url, etree.fromstring(kwargs['data'])


## Attribute sets ##

def test_node_to_plist_leaves_out_empty_values():
    node = etree.fromstring('<page title="Home" id="12" scope="" parent_id="3"><description></description>'
                            '<body>Hi</body><linked_pages/></page>')
    assert node_to_plist(node) == {'title': "Home", 'id': 12, 'parent_id': 3, 'body': "Hi"}


def test_node_to_plist_nested_lists():
    node = etree.fromstring('<page id="1"><lists><list id="201" name="Shopping"/><list id="202" name=""/></lists></page>')
    assert node_to_plist(node) == {'id': 1, 'lists': [{'id': 201, 'name': "Shopping"}, {'id': 202}]}


def test_node_to_plist_leaf_with_attributes():
    node = etree.fromstring('<page id="1"><belongs_to id="7" title="Parent"/>'
                            '<owner id="3">Alice</owner><empty scope=""/></page>')
    assert node_to_plist(node) == {'id': 1,
                                   'belongs_to': {'id': 7, 'title': "Parent"},
                                   'owner': {'id': 3, 'content': "Alice"}}


def test_node_to_plist_content():
    assert node_to_plist(etree.fromstring('<item completed="false" id="501">Milk</item>')) == \
        {'completed': "false", 'id': 501, 'content': "Milk"}


## Request envelope ##

def test_envelope(backpack, session):
    backpack.add_list_item(1002, 201, content="Eggs")
    url, body = sent_request(session)
    assert url == "https://fake.backpackit.com/ws/page/1002/lists/201/items/add"
    assert body.tag == 'request'
    assert [child.tag for child in body] == ['token', 'item']
    assert body.findtext('token') == "fake_backpack_token"
    assert body.findtext('item/content') == "Eggs"
    assert session.LastRequest[0] == 'post'


def test_envelope_without_payload(backpack, session):
    backpack.list_pages()
    _, body = sent_request(session)
    assert [child.tag for child in body] == ['token']


def test_no_token(session):
    backpack = BackpackClient(serverparams=dict(server='fake'), session=session)
    with pytest.raises(ServiceError):
        backpack.list_pages()
    assert session.Requests == []


def test_tags_payload_quotes_multiword_tags():
    assert tags_payload(["home", "to do"])[0].text == 'home "to do"'
    assert tags_payload("home")[0].text == "home"


def test_reminder_payload():
    reminder = reminder_payload("Call Mike", datetime(2014, 3, 5, 9, 0))[0]
    assert reminder.findtext('content') == "Call Mike"
    assert reminder.findtext('remind_at') == "2014-03-05 09:00:00"
    assert reminder_payload("+180 Call Mike")[0].find('remind_at') is None


## Error decoding ##

def test_vendor_error(backpack, session):
    session.add_route('post', 'pages/all', load_testdata('backpack_bad_token.xml'))
    with pytest.raises(ServiceError) as excinfo:
        backpack.list_pages()
    assert excinfo.value.code == "100"
    assert excinfo.value.message == "Bad token"


def test_vendor_error_with_error_status(backpack, session):
    session.add_route('post', 'pages/all', load_testdata('backpack_bad_token.xml'), status=403)
    with pytest.raises(ServiceError) as excinfo:
        backpack.list_pages()
    assert excinfo.value.code == "100"


def test_status_500(backpack, session):
    session.add_route('post', 'pages/all', b"<html><body>Internal error</body></html>", status=500)
    with pytest.raises(ServiceError) as excinfo:
        backpack.list_pages()
    assert excinfo.value.code == 500
    assert "500" in excinfo.value.message
    assert bool(backpack) is False


def test_success_false_without_error(backpack, session):
    session.add_route('post', 'pages/all', b'<response success="false"/>')
    with pytest.raises(ServiceError):
        backpack.list_pages()


def test_unparseable_body(backpack, session):
    session.add_route('post', 'pages/all', b"not xml at all")
    with pytest.raises(ServiceError):
        backpack.list_pages()


## Calls ##

def test_list_pages(backpack):
    pages = backpack.list_pages()
    assert pages == [{'scope': "user", 'title': "Home", 'id': 1001},
                     {'scope': "user", 'title': "Groceries", 'id': 1002},
                     {'scope': "shared", 'title': "Projects", 'id': 1003}]
    assert bool(backpack) is True


def test_show_page(backpack):
    page = backpack.show_page(1002)
    assert page['title'] == "Groceries"
    assert page['description'] == "Weekly shopping"
    assert page['lists'] == [{'id': 201, 'name': "Shopping"}]
    assert page['notes'][0]['content'] == "Open 9-17"
    assert 'linked_pages' not in page


def test_path_arguments_as_keywords(backpack, session):
    item = backpack.add_list_item(page_id=1002, list_id=201, content="Eggs")
    assert item == {'completed': "false", 'id': 503, 'content': "Eggs"}
    assert session.LastRequest[1].endswith("/page/1002/lists/201/items/add")


def test_missing_path_argument(backpack):
    with pytest.raises(TypeError, match=r"add_list_item\(\) missing argument: 'list_id'"):
        backpack.add_list_item(1002, content="Eggs")


def test_too_many_arguments(backpack):
    with pytest.raises(TypeError, match=r"list_pages\(\) takes at most 0"):
        backpack.list_pages(1)


def test_unexpected_keyword(backpack):
    with pytest.raises(TypeError, match=r"destroy_page\(\) got unexpected keyword arguments: content"):
        backpack.destroy_page(1002, content="oops")


def test_call_named_after_attribute(session):
    assert BackpackClient.toggle_list_item.__name__ == 'toggle_list_item'
    class TestClient(BackpackClient):
        old_pages = backpack_call("pages/all", result='pages', islist=True)
    client = TestClient(confighandler=FakeConfighandler(), session=session)
    with pytest.raises(TypeError, match=r"old_pages\(\)"):
        client.old_pages(1)


def test_mutating_calls_return_true(backpack, session):
    assert backpack.destroy_page(1003) is True
    assert backpack.update_page_title(1002, title="Food") is True
    _, body = sent_request(session)
    assert body.findtext('page/title') == "Food"
    assert backpack.tag_page(1002, tags=["home", "weekly shop"]) is True


def test_reminders(backpack, session):
    assert backpack.list_reminders() == [{'remind_at': "2013-03-05 09:00:00", 'id': 601, 'content': "Call Mike"}]
    reminder = backpack.create_reminder(content="Pick up the order", remind_at="2013-03-06 09:00:00")
    assert reminder['id'] == 602
    url, body = sent_request(session)
    assert url.endswith("/ws/reminders/create")
    assert body.findtext('reminder/remind_at') == "2013-03-06 09:00:00"


def test_missing_result_element(backpack, session):
    session.add_route('post', 'notes/list', load_testdata('backpack_success.xml'))
    assert backpack.list_notes(1002) == []
    session.add_route('post', 'notes/create', load_testdata('backpack_success.xml'))
    assert backpack.create_note(1002, title="Empty") is None


## Deprecated calls ##

def test_deprecated_call_warns_and_executes(backpack, session):
    with pytest.warns(DeprecationWarning):
        items = backpack.list_items(1002)
    assert [item['content'] for item in items] == ["Milk", "Bread"]
    assert session.LastRequest[1].endswith("/page/1002/items/list")


def test_deprecated_call_warns_every_time(backpack):
    for _ in range(2):
        with pytest.warns(DeprecationWarning):
            backpack.add_item(1002, content="Eggs")


def test_backpack_call_flags():
    assert BackpackClient.list_items.Deprecated is True
    assert BackpackClient.list_list_items.Deprecated is False
    assert BackpackClient.toggle_list_item.ArgNames == ['page_id', 'list_id', 'item_id']


def test_backpack_call_on_new_class(session):
    class TestClient(BackpackClient):
        old_pages = backpack_call("pages/all", result='pages', islist=True, deprecated=True)
    client = TestClient(confighandler=FakeConfighandler(), session=session)
    with pytest.warns(DeprecationWarning):
        assert len(client.old_pages()) == 3


## Page cache ##

def test_page_index_is_cached(backpack, session):
    assert backpack.page_id("Groceries") == 1002
    assert backpack.page_id("Projects") == 1003
    assert backpack.page_id("Nonexisting") is None
    assert len(session.Requests) == 1


def test_invalidate_page_cache(backpack, session):
    assert backpack.page_id("Groceries") == 1002
    session.add_route('post', 'pages/all', b'<response success="true"><pages>'
                                           b'<page title="Groceries" id="2002"/></pages></response>')
    assert backpack.page_id("Groceries") == 1002
    backpack.invalidate_page_cache()
    assert backpack.page_id("Groceries") == 2002
    assert len(session.Requests) == 2


def test_invalidate_empty_cache(backpack, session):
    backpack.invalidate_page_cache()
    assert session.Requests == []


def test_find_page_id(backpack, session):
    assert backpack.find_page_id(5) == 5
    assert backpack.find_page_id("5") == 5
    assert session.Requests == []
    assert backpack.find_page_id("Home") == 1001
    with pytest.raises(ServiceError):
        backpack.find_page_id("Nonexisting")
