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
# pylint: disable-msg=W0621,C0111
"""
Tests for the highpack_cmd command line interface module.
"""

import io
import json
import logging
import pytest
import yaml
logger = logging.getLogger(__name__)

from highpack import highpack_cmd, getLoglevelInt, init_logging


@pytest.fixture
def argsns():
    """ Returns a function making a parsed args namespace in testing mode, with the environment set up. """
    def make(*argv):
        ns = highpack_cmd.make_parser().parse_args(('--testing', '--outputformat', 'none') + argv)
        highpack_cmd.setup_environment(ns)
        return ns
    return make

@pytest.fixture(autouse=True)
def restore_root_logger():
    rootlogger = logging.getLogger()
    handlers, level = list(rootlogger.handlers), rootlogger.level
    yield
    rootlogger.handlers[:] = handlers
    rootlogger.setLevel(level)


def test_people(argsns):
    ns = argsns('people')
    res = ns.func(ns)
    assert [p['first_name'] for p in res] == ['Alice', 'Bob']


def test_notes_for(argsns):
    ns = argsns('notes-for', 'people', '1')
    res = ns.func(ns)
    assert res[0]['body'] == "Discussed the new order."


def test_search(argsns):
    ns = argsns('search', '--name', 'alice', '--fields', 'name', 'phone')
    assert ns.func(ns) == [{'name': "Alice Smith", 'phone': "555-0100"}]


def test_page_by_title(argsns):
    ns = argsns('page', 'Groceries')
    assert ns.func(ns)['id'] == 1002


def test_add_item(argsns):
    ns = argsns('add-item', 'Groceries', 'Eggs', '--list', '201')
    res = ns.func(ns)
    assert res['content'] == "Eggs"
    _, url, _ = highpack_cmd.getBackpack().Session.LastRequest
    assert url.endswith("/page/1002/lists/201/items/add")


def test_items_without_list_is_deprecated(argsns):
    ns = argsns('items', '1002')
    with pytest.warns(DeprecationWarning):
        res = ns.func(ns)
    assert len(res) == 2


def test_remind_from_args(argsns):
    ns = argsns('remind', 'Pick', 'up', 'the', 'order')
    res = ns.func(ns)
    assert res['id'] == 602
    _, _, kwargs = highpack_cmd.getBackpack().Session.LastRequest
    assert b"<content>Pick up the order</content>" in kwargs['data']


def test_remind_from_stdin(argsns, monkeypatch):
    monkeypatch.setattr('sys.stdin', io.StringIO("Pick up\n  the order\n"))
    ns = argsns('remind')
    ns.func(ns)
    _, _, kwargs = highpack_cmd.getBackpack().Session.LastRequest
    assert b"<content>Pick up the order</content>" in kwargs['data']


def test_remind_empty(argsns, monkeypatch):
    monkeypatch.setattr('sys.stdin', io.StringIO("  \n"))
    ns = argsns('remind')
    with pytest.raises(ValueError):
        ns.func(ns)


def test_refresh_pages(argsns):
    ns = argsns('refresh-pages')
    res = ns.func(ns)
    assert res == {'Home': 1001, 'Groceries': 1002, 'Projects': 1003}


def test_region_text():
    assert highpack_cmd.region_text("  one\ttwo\n\nthree ") == "one two three"


def test_outputres_json(capsys, argsns):
    ns = argsns('person', '1')
    highpack_cmd.outputres(highpack_cmd.getHighrise().people(), 'json')
    out, _ = capsys.readouterr()
    people = json.loads(out)
    assert people[0]['first_name'] == "Alice"
    assert people[0]['type'] == "person"
    assert people[0]['created_at'].startswith("2013-02-01")
    assert ns.personid == [1]


def test_outputres_yaml(capsys):
    highpack_cmd.outputres([{'id': 1}], 'YAML')
    out, _ = capsys.readouterr()
    assert yaml.safe_load(out) == [{'id': 1}]


def test_main_testing(capsys):
    assert highpack_cmd.main(['--testing', '--outputformat', 'json', 'pages']) == 0
    out, _ = capsys.readouterr()
    assert [p['title'] for p in json.loads(out)] == ['Home', 'Groceries', 'Projects']


def test_main_service_error(capsys):
    # No canned response for person 99:
    assert highpack_cmd.main(['--testing', 'person', '99']) == 1
    _, err = capsys.readouterr()
    assert "404" in err


def test_main_printconfig(capsys):
    assert highpack_cmd.main(['--testing', 'printconfig']) == 0
    out, _ = capsys.readouterr()
    assert "fake_highrise_token" in out


def test_getLoglevelInt():
    assert getLoglevelInt('debug') == logging.DEBUG
    assert getLoglevelInt('20') == 20
    assert getLoglevelInt(None) == logging.WARNING
    assert getLoglevelInt('nonsense') == logging.WARNING


def test_init_logging(tmpdir):
    logfile = str(tmpdir.join('logs', 'highpack.log'))
    ns = highpack_cmd.make_parser().parse_args(['--loglevel', 'info', '--logtofile', logfile, 'pages'])
    handlers = init_logging(ns, prefix="test")
    assert len(handlers) == 2
    assert handlers[0].level == logging.INFO
    logging.getLogger('highpack.test').warning("written to file")
    handlers[1].flush()
    with open(logfile) as fd:
        assert "written to file" in fd.read()
    handlers[1].close()
