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
Highrise client module.

The HighriseClient has one method per Highrise resource call. These are not
written out by hand, but generated by define_resource() from the RESOURCES table:

    define_resource(HighriseClient, 'people', 'person', ('notes', 'emails'))

gives HighriseClient the methods:
    people()                -> GET /people.xml
    person(id)              -> GET /people/<id>.xml
    people_notes(person_id) -> GET /people/<person_id>/notes.xml
    people_emails(person_id)-> GET /people/<person_id>/emails.xml

Each call performs exactly one blocking request; the response is parsed by
the client's SchemaRegistry into Record objects (or lists thereof).
"""

import logging
logger = logging.getLogger(__name__)

from ..server.abstract_rest_client import AbstractRestClient, ServiceError
from .entities import build_registry
from .schema import UNKNOWN, Record


class HighriseClient(AbstractRestClient):
    """
    Client for the Highrise CRM XML API.

    Configuration (confighandler entries):
    * highrise_serverparams : e.g. {server: acme, scheme: https}
    * highrise_token : the API authentication token.
    The token is sent as HTTP basic auth user, with 'X' as password.
    """
    CONFIG_FORMAT = 'highrise_{}'

    def __init__(self, serverparams=None, token=None, confighandler=None, registry=None, session=None):
        super(HighriseClient, self).__init__(serverparams=serverparams, token=token,
                                             confighandler=confighandler, session=session)
        self._defaultparams = dict(domain='highrisehq.com', scheme='http')
        self.Registry = registry if registry is not None else build_registry()
        self.setup_rest_api()

    def request(self, method, path, **kwargs):
        """ Adds token authentication to the request. """
        token = self.Token
        if not token:
            raise ServiceError("No Highrise API token configured (config key '{}').".format(
                self.CONFIG_FORMAT.format('token')))
        kwargs.setdefault('auth', (token, 'X'))
        return super(HighriseClient, self).request(method, path, **kwargs)

    def translate(self, response):
        """
        Check the response status, parse the body and hand the root element to the registry.
        Returns None for an empty body, and Record(UNKNOWN, None, {'node': None})
        for a body that is not XML.
        """
        self.check_status(response)
        root = self.parse_xml(response)
        self.release(response)
        if root is None:
            if response.content and response.content.strip():
                logger.warning("Unparseable response body from %s, returning placeholder record.", response.url)
                return Record(UNKNOWN, None, {'node': None})
            logger.info("Empty response body from %s", response.url)
            return None
        return self.Registry.parse(root)

    def fetch(self, path):
        """ GET path and return the parsed result. """
        return self.translate(self.get(path))

    def test_connection(self):
        """ Returns True if the account info can be retrieved. """
        try:
            self.account()
        except ServiceError as e:
            logger.info("Highrise connection test failed: %s", e)
            return False
        return True

    def contacts(self):
        """ Returns all people and companies. """
        return as_list(self.people()) + as_list(self.companies())


def as_list(result):
    """ A collection call gives a list; None or a single record (non-array body) is wrapped. """
    if result is None:
        return []
    if isinstance(result, list):
        return result
    return [result]


## Call generation ##

def _collection_call(name, path):
    def collection(self):
        return self.fetch("{}.xml".format(path))
    collection.__name__ = name
    collection.__doc__ = "GET /{}.xml".format(path)
    return collection

def _single_call(singular, path):
    def single(self, id): # pylint: disable=W0622
        return self.fetch("{}/{}.xml".format(path, int(id)))
    single.__name__ = singular
    single.__doc__ = "GET /{}/<id>.xml".format(path)
    return single

def _subresource_call(name, path, sub):
    def subresource(self, parent_id):
        return self.fetch("{}/{}/{}.xml".format(path, int(parent_id), sub))
    subresource.__name__ = name
    subresource.__doc__ = "GET /{}/<parent_id>/{}.xml".format(path, sub)
    return subresource

def define_resource(cls, name, singular=None, subresources=(), path=None):
    """
    Generate the call methods for a Highrise resource on cls:
    (a) <name>() fetching the collection,
    (b) if singular is given, <singular>(id) fetching a single resource,
    (c) <name>_<sub>(parent_id) fetching each nested sub-resource collection.
    path defaults to name.
    """
    path = path or name
    setattr(cls, name, _collection_call(name, path))
    if singular:
        setattr(cls, singular, _single_call(singular, path))
    for sub in subresources:
        methodname = "{}_{}".format(name, sub)
        setattr(cls, methodname, _subresource_call(methodname, path, sub))
    logger.debug("Defined resource '%s' on %s (singular: %s, sub-resources: %s)", name, cls.__name__, singular, subresources)
    return cls


# (name, singular, sub-resources)
# TODO: people.xml and companies.xml return at most 500 parties; page through with the ?n=<offset> parameter.
# TODO: people/search.xml (criteria[email]=...) and ?tag_id= filters, so the directory search need not fetch everything.
# TODO: kases.xml only lists open cases; add kases/closed.xml.
RESOURCES = [
    ('people', 'person', ('notes', 'emails', 'tasks')),
    ('companies', 'company', ('notes', 'emails', 'people', 'tasks')),
    ('kases', 'kase', ('notes', 'emails', 'tasks')),
    ('deals', 'deal', ('notes', 'emails', 'tasks')),
    ('notes', 'note', ('comments',)),
    ('emails', 'email', ('comments',)),
    ('tasks', 'task', ()),
    ('tags', 'tag', ()),
    ('users', 'user', ()),
    ('groups', 'group', ()),
    ('memberships', 'membership', ()),
    ('account', None, ()),
    ('deal_categories', 'deal_category', ()),
    ('task_categories', 'task_category', ()),
]

for _name, _singular, _subresources in RESOURCES:
    define_resource(HighriseClient, _name, _singular, _subresources)
