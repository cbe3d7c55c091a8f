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
# pylint: disable=C0103,C0111,W0613,R0903
"""
This module provides a fake requests.Session which can be used for testing
(and for trying out the command line interface without an account).

Responses are canned: a route maps (method, path) to (status, body), where
path is matched against the end of the requested url. The longest matching
path wins, so 'people.xml' will also answer 'companies/10/people.xml'
unless that is added as a route too.
"""

import os
from urllib.parse import urlparse
import logging
logger = logging.getLogger(__name__)


DATADIR = os.path.join(os.path.dirname(__file__), "testdouble_data")


def load_testdata(filename):
    """ Returns the content of a file in testdouble_data as bytes. """
    with open(os.path.join(DATADIR, filename), 'rb') as fd:
        return fd.read()


class FakeResponse(object):
    """ Mimics the parts of requests.Response used by the clients. """
    def __init__(self, status_code=200, content=b'', url=None):
        self.status_code = status_code
        if isinstance(content, str):
            content = content.encode('utf-8')
        self.content = content
        self.url = url
        self.closed = False

    @property
    def text(self):
        return self.content.decode('utf-8')

    @property
    def ok(self):
        return self.status_code < 400

    def close(self):
        self.closed = True


class FakeSession(object):
    """
    A fake requests.Session.
    All requests are recorded in self.Requests as (method, url, kwargs) tuples.
    If a route's body is an exception instance, it is raised instead.
    """
    def __init__(self, routes=None):
        self.headers = dict()
        self.Routes = dict()
        self.Requests = list()
        for (method, path), (status, body) in (routes or {}).items():
            self.add_route(method, path, body, status)

    def add_route(self, method, path, body, status=200):
        self.Routes[(method.lower(), path.strip('/'))] = (status, body)

    def match(self, method, url):
        urlpath = urlparse(url).path.rstrip('/')
        candidates = [path for (routemethod, path) in self.Routes
                      if routemethod == method and (urlpath == path or urlpath.endswith('/' + path))]
        if not candidates:
            return None
        return self.Routes[(method, max(candidates, key=len))]

    def request(self, method, url, **kwargs):
        method = method.lower()
        self.Requests.append((method, url, kwargs))
        route = self.match(method, url)
        if route is None:
            logger.info("FakeSession: no route for %s %s, returning 404", method.upper(), url)
            return FakeResponse(404, b'', url=url)
        status, body = route
        if isinstance(body, Exception):
            raise body
        logger.debug("FakeSession: %s %s -> %s", method.upper(), url, status)
        return FakeResponse(status, body, url=url)

    @property
    def LastRequest(self):
        return self.Requests[-1] if self.Requests else None


def highrise_routes():
    """ Canned Highrise responses for a small account (two people at Acme, plus Initech). """
    return {
        ('get', 'people.xml'): (200, load_testdata('highrise_people.xml')),
        ('get', 'companies.xml'): (200, load_testdata('highrise_companies.xml')),
        ('get', 'people/1/notes.xml'): (200, load_testdata('highrise_person_notes.xml')),
        ('get', 'account.xml'): (200, load_testdata('highrise_account.xml')),
    }

def backpack_routes():
    """
    Canned Backpack responses. Paths are suffixes, so e.g. 'items/add'
    answers adding an item to any list on any page.
    """
    success = load_testdata('backpack_success.xml')
    routes = {
        ('post', 'pages/all'): (200, load_testdata('backpack_pages.xml')),
        ('post', 'page/1002'): (200, load_testdata('backpack_page.xml')),
        ('post', 'items/list'): (200, load_testdata('backpack_items.xml')),
        ('post', 'items/add'): (200, load_testdata('backpack_item.xml')),
        ('post', 'notes/create'): (200, load_testdata('backpack_note.xml')),
        ('post', 'reminders'): (200, load_testdata('backpack_reminders.xml')),
        ('post', 'reminders/create'): (200, load_testdata('backpack_reminder.xml')),
    }
    for path in ('tags/tag', 'update_title', 'update_body', 'destroy'):
        routes[('post', path)] = (200, success)
    return routes

def fake_session(highrise=True, backpack=True):
    """ Returns a FakeSession with the canned Highrise and/or Backpack routes. """
    routes = dict()
    if highrise:
        routes.update(highrise_routes())
    if backpack:
        routes.update(backpack_routes())
    return FakeSession(routes)
