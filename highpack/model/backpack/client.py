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
# pylint: disable=C0103,C0301,W0142,R0902,R0904,R0913
"""
Backpack client module.

All Backpack API calls are POST requests to /ws/<path> with the body:

    <request>
      <token>API_TOKEN</token>
      ...payload...
    </request>

and all responses look like:

    <response success="true">...</response>
    <response success="false"><error code="100">Bad token</error></response>

The call methods of BackpackClient are made by backpack_call(), e.g.

    add_list_item = backpack_call("page/{page_id}/lists/{list_id}/items/add", item_payload, result='item')

which gives a method add_list_item(page_id, list_id, content='...').
Placeholders in the path are filled from the positional arguments (in order),
keyword arguments are handed to the payload function.

Results are returned as attribute dicts (see node_to_plist), where a key is
only present if the response had a non-empty value for it.
"""

import string
import warnings
from collections import OrderedDict
from datetime import datetime
from lxml import etree

import logging
logger = logging.getLogger(__name__)

from ..server.abstract_rest_client import AbstractRestClient, ServiceError
from ..decorators.cache_decorator import cached_property


def element_children(node):
    return [child for child in node if isinstance(child.tag, str)]

def convert_value(key, value):
    """ id values are returned as ints, everything else as strings. """
    if key == 'id' or key.endswith('_id'):
        try:
            return int(value)
        except ValueError:
            pass
    return value

def node_to_plist(node):
    """
    Build an attribute dict from an element:
    * attributes with non-empty values,
    * leaf children with non-empty text, keyed by tag,
    * leaf children with attributes, as attribute dicts keyed by tag,
    * children with element children, as lists of attribute dicts,
    * the element's own text (if any) as 'content'.
    Absent or empty values are left out, never set to None.
    """
    plist = OrderedDict()
    for key, value in node.attrib.items():
        if value:
            plist[key] = convert_value(key, value)
    children = element_children(node)
    for child in children:
        grandchildren = element_children(child)
        if grandchildren:
            plist[child.tag] = [node_to_plist(grandchild) for grandchild in grandchildren]
        elif any(child.attrib.values()):
            # e.g. <belongs_to id="7" title="Parent"/>
            plist[child.tag] = node_to_plist(child)
        else:
            text = (child.text or '').strip()
            if text:
                plist[child.tag] = convert_value(child.tag, text)
    text = (node.text or '').strip()
    if text and not children:
        plist['content'] = text
    return plist


## Payload builders ##
# Each returns a list of elements to put inside <request> after the token.

def make_element(tag, text=None, children=()):
    element = etree.Element(tag)
    if text is not None:
        element.text = str(text)
    for child in children:
        element.append(child)
    return element

def page_payload(title, description=''):
    return [make_element('page', children=[make_element('title', title),
                                           make_element('description', description)])]

def title_payload(title):
    return [make_element('page', children=[make_element('title', title)])]

def body_payload(description):
    return [make_element('page', children=[make_element('description', description)])]

def link_payload(linked_page_id):
    return [make_element('linked_page_id', int(linked_page_id))]

def item_payload(content):
    return [make_element('item', children=[make_element('content', content)])]

def list_payload(name):
    return [make_element('name', name)]

def note_payload(title='', body=''):
    return [make_element('note', children=[make_element('title', title), make_element('body', body)])]

def tags_payload(tags):
    """ Tags are given as a single space separated string; multi-word tags are quoted. """
    if isinstance(tags, str):
        tags = [tags]
    text = " ".join('"{}"'.format(tag) if " " in tag else tag for tag in tags)
    return [make_element('tags', text)]

def reminder_payload(content, remind_at=None):
    """
    remind_at may be a datetime or a string. If not given, content may start
    with a relative time, e.g. '+180 Call Mike' (Backpack parses this server side).
    """
    children = [make_element('content', content)]
    if remind_at is not None:
        if isinstance(remind_at, datetime):
            remind_at = remind_at.strftime('%Y-%m-%d %H:%M:%S')
        children.append(make_element('remind_at', remind_at))
    return [make_element('reminder', children=children)]


def shape_result(root, result=None, islist=False):
    """
    Pick the result out of the response root:
    * result None: True (the call succeeded).
    * islist: list of attribute dicts for the children of the <result> element.
    * otherwise: attribute dict of the <result> element.
    """
    if result is None:
        return True
    node = root if root.tag == result else root.find(result)
    if node is None:
        logger.debug("No <%s> element in response.", result)
        return [] if islist else None
    if islist:
        return [node_to_plist(child) for child in element_children(node)]
    return node_to_plist(node)


def backpack_call(path_fmt, payload=None, result=None, islist=False, deprecated=False, doc=None):
    """
    Make a Backpack call method for the API path path_fmt, e.g. "page/{page_id}/items/add".
    * payload : function building the request payload elements from the call's keyword arguments.
    * result, islist : how to extract the return value from the response, see shape_result().
    * deprecated : if True, every call warns that the call is deprecated, but still executes.
    """
    argnames = [fieldname for _, fieldname, _, _ in string.Formatter().parse(path_fmt) if fieldname]

    def call(self, *args, **kwargs):
        if deprecated:
            msg = "Backpack call '{}' is deprecated: {}".format(path_fmt, deprecated if isinstance(deprecated, str) else "")
            logger.warning(msg)
            warnings.warn(msg, DeprecationWarning, stacklevel=2)
        if len(args) > len(argnames):
            raise TypeError("{}() takes at most {} positional arguments ({} given)".format(
                call.__name__, len(argnames), len(args)))
        urlargs = dict(zip(argnames, args))
        for argname in argnames[len(args):]:
            try:
                urlargs[argname] = kwargs.pop(argname)
            except KeyError:
                raise TypeError("{}() missing argument: '{}'".format(call.__name__, argname))
        if kwargs and payload is None:
            raise TypeError("{}() got unexpected keyword arguments: {}".format(call.__name__, ", ".join(kwargs)))
        elements = payload(**kwargs) if payload is not None else []
        root = self.call(path_fmt.format(**urlargs), elements)
        return shape_result(root, result, islist)

    call.__doc__ = doc or "POST /ws/{}".format(path_fmt)
    call.ArgNames = argnames
    call.Deprecated = bool(deprecated)
    return CallMethod(call)


class CallMethod(object):
    """
    Class attribute holding a function made by backpack_call().
    The function is renamed after the attribute, so that error messages
    read e.g. "add_list_item() missing argument: 'list_id'".
    Accessed on the class, the plain function is returned.
    """
    def __init__(self, func):
        self.func = func
        self.__doc__ = func.__doc__

    def __set_name__(self, owner, name):
        self.func.__name__ = name
        self.func.__qualname__ = "{}.{}".format(owner.__name__, name)

    def __get__(self, inst, owner):
        if inst is None:
            return self.func
        return self.func.__get__(inst, owner)


class BackpackClient(AbstractRestClient):
    """
    Client for the Backpack XML API.

    Configuration (confighandler entries):
    * backpack_serverparams : e.g. {server: acme, scheme: https}
    * backpack_token : the API token.

    Keeps an index of page titles -> page ids, see PageIndex.
    """
    CONFIG_FORMAT = 'backpack_{}'

    def __init__(self, serverparams=None, token=None, confighandler=None, session=None):
        super(BackpackClient, self).__init__(serverparams=serverparams, token=token,
                                             confighandler=confighandler, session=session)
        self._defaultparams = dict(domain='backpackit.com', scheme='http', urlpostfix='/ws')
        self.setup_rest_api()

    def envelope(self, payload=()):
        """ Returns the request body: <request><token>...</token>payload</request> """
        token = self.Token
        if not token:
            raise ServiceError("No Backpack API token configured (config key '{}').".format(
                self.CONFIG_FORMAT.format('token')))
        request = make_element('request', children=[make_element('token', token)])
        for element in payload:
            request.append(element)
        return etree.tostring(request, encoding='UTF-8', xml_declaration=True)

    def call(self, path, payload=()):
        """ POST the payload to path and return the checked response root element. """
        return self.translate(self.post(path, data=self.envelope(payload)))

    def translate(self, response):
        """
        Parse the response and check it for errors:
        * an <error code="..."> child raises ServiceError with the vendor's code and message,
        * otherwise a status outside 200-299 raises ServiceError reporting the status,
        * otherwise success="true" is required.
        Returns the root element.
        """
        root = self.parse_xml(response)
        status = response.status_code
        self.release(response)
        if root is not None:
            error = root.find('error')
            if error is not None:
                code, message = error.get('code'), (error.text or '').strip()
                logger.info("Backpack reported error %s: %s", code, message)
                raise ServiceError(message, code=code)
        if not 200 <= status < 300:
            self.notok()
            raise ServiceError("Server returned HTTP status {}".format(status), code=status)
        if root is None or root.get('success') != 'true':
            raise ServiceError("Backpack request was not successful (success={!r})".format(
                None if root is None else root.get('success')))
        self.setok()
        return root

    def test_connection(self):
        try:
            self.list_pages()
        except ServiceError as e:
            logger.info("Backpack connection test failed: %s", e)
            return False
        return True

    ## Pages ##
    list_pages = backpack_call("pages/all", result='pages', islist=True,
                               doc="Returns all pages as list of dicts with id, title and scope.")
    show_page = backpack_call("page/{page_id}", result='page')
    create_page = backpack_call("pages/new", page_payload, result='page')
    destroy_page = backpack_call("page/{page_id}/destroy")
    update_page_title = backpack_call("page/{page_id}/update_title", title_payload)
    update_page_body = backpack_call("page/{page_id}/update_body", body_payload)
    link_page = backpack_call("page/{page_id}/link", link_payload)

    ## Lists ##
    list_lists = backpack_call("page/{page_id}/lists/list", result='lists', islist=True)
    create_list = backpack_call("page/{page_id}/lists/add", list_payload, result='list')
    list_list_items = backpack_call("page/{page_id}/lists/{list_id}/items/list", result='items', islist=True)
    add_list_item = backpack_call("page/{page_id}/lists/{list_id}/items/add", item_payload, result='item')
    toggle_list_item = backpack_call("page/{page_id}/lists/{list_id}/items/toggle/{item_id}")
    destroy_list_item = backpack_call("page/{page_id}/lists/{list_id}/items/destroy/{item_id}")

    ## Page items (from before pages could have several lists) ##
    _items_deprecation = "pages can have several lists, use the list item calls."
    list_items = backpack_call("page/{page_id}/items/list", result='items', islist=True,
                               deprecated=_items_deprecation)
    add_item = backpack_call("page/{page_id}/items/add", item_payload, result='item',
                             deprecated=_items_deprecation)
    update_item = backpack_call("page/{page_id}/items/update/{item_id}", item_payload,
                                deprecated=_items_deprecation)
    toggle_item = backpack_call("page/{page_id}/items/toggle/{item_id}", deprecated=_items_deprecation)
    destroy_item = backpack_call("page/{page_id}/items/destroy/{item_id}", deprecated=_items_deprecation)

    ## Notes ##
    list_notes = backpack_call("page/{page_id}/notes/list", result='notes', islist=True)
    create_note = backpack_call("page/{page_id}/notes/create", note_payload, result='note')
    update_note = backpack_call("page/{page_id}/notes/update/{note_id}", note_payload)
    destroy_note = backpack_call("page/{page_id}/notes/destroy/{note_id}")

    ## Tags ##
    tag_page = backpack_call("page/{page_id}/tags/tag", tags_payload)

    ## Reminders ##
    list_reminders = backpack_call("reminders", result='reminders', islist=True)
    create_reminder = backpack_call("reminders/create", reminder_payload, result='reminder')
    update_reminder = backpack_call("reminders/update/{reminder_id}", reminder_payload)
    destroy_reminder = backpack_call("reminders/destroy/{reminder_id}")

    ## Page index ##
    @cached_property(ttl=0)
    def PageIndex(self):
        """
        OrderedDict of page title -> page id, fetched on first use.
        Not refreshed automatically; use invalidate_page_cache() after pages are added or renamed.
        """
        index = OrderedDict((page['title'], page['id']) for page in self.list_pages()
                            if 'title' in page and 'id' in page)
        logger.debug("Page index loaded with %s pages.", len(index))
        return index

    def invalidate_page_cache(self):
        """ Forget the page index; it will be re-fetched on next use. """
        del self.PageIndex

    def page_id(self, title):
        """ Returns the id of the page with the given title, or None. """
        return self.PageIndex.get(title)

    def find_page_id(self, page):
        """ page may be a page id or a page title. """
        if isinstance(page, int) or (isinstance(page, str) and page.isdigit()):
            return int(page)
        pageid = self.page_id(page)
        if pageid is None:
            raise ServiceError("No Backpack page titled '{}' (try refreshing the page cache).".format(page))
        return pageid
