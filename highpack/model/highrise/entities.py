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
# pylint: disable=C0301
"""
The Highrise entity types.

See http://developer.37signals.com/highrise/ for the XML formats.
"""

import logging
logger = logging.getLogger(__name__)

from .schema import UNKNOWN, Record, SchemaRegistry, define_entity


# name : (fields, markers)
ENTITY_TYPES = [
    # Contact data
    ('contact-data', ([('email-addresses', ('array', 'email-address')),
                       ('phone-numbers', ('array', 'phone-number')),
                       ('addresses', ('array', 'address')),
                       ('web-addresses', ('array', 'web-address')),
                       ('instant-messengers', ('array', 'instant-messenger')),
                       ('twitter-accounts', ('array', 'twitter-account'))],
                      ())),
    ('email-address', ([('address', 'string'), ('location', 'string')], ('identified',))),
    ('phone-number', ([('number', 'string'), ('location', 'string')], ('identified',))),
    ('address', ([('street', 'string'), ('city', 'string'), ('state', 'string'),
                  ('zip', 'string'), ('country', 'string'), ('location', 'string')],
                 ('identified',))),
    ('web-address', ([('url', 'string'), ('location', 'string')], ('identified',))),
    ('instant-messenger', ([('address', 'string'), ('protocol', 'string'), ('location', 'string')],
                           ('identified',))),
    ('twitter-account', ([('username', 'string'), ('url', 'string'), ('location', 'string')],
                         ('identified',))),
    ('tag', ([('name', 'string')], ('identified',))),

    # Parties
    ('person', ([('first-name', 'string'), ('last-name', 'string'), ('title', 'string'),
                 ('company-id', 'integer'), ('company-name', 'string')],
                ('party',))),
    ('company', ([('name', 'string')], ('party',))),

    # Notes, emails and comments
    ('note', ([], ('noted',))),
    ('email', ([('title', 'string')], ('noted',))),
    ('comment', ([('body', 'string'), ('parent-id', 'integer')], ('owned',))),

    # Tasks, cases and deals
    ('task', ([('body', 'string'), ('frame', 'string'), ('category-id', 'integer'),
               ('due-at', 'datetime'), ('alert-at', 'datetime'), ('done-at', 'datetime'),
               ('recording-id', 'integer'), ('public', 'boolean')],
              ('owned', 'subject'))),
    ('kase', ([('name', 'string'), ('background', 'string'), ('closed-at', 'datetime'),
               ('parties', ('array', 'party'))],
              ('editable',))),
    ('deal', ([('name', 'string'), ('background', 'string'), ('status', 'string'),
               ('status-changed-on', 'datetime'), ('category-id', 'integer'),
               ('currency', 'string'), ('price', 'integer'), ('price-type', 'string'),
               ('duration', 'integer'), ('party-id', 'integer'),
               ('responsible-party-id', 'integer'), ('party', ('type', 'party'))],
              ('editable',))),

    # Account, users and groups
    ('user', ([('name', 'string'), ('email-address', 'string'), ('admin', 'boolean')],
              ('identified', 'timestamped'))),
    ('group', ([('name', 'string')], ('identified',))),
    ('membership', ([('user-id', 'integer'), ('group-id', 'integer')], ('identified',))),
    ('account', ([('name', 'string'), ('subdomain', 'string'), ('plan', 'string'),
                  ('owner-id', 'integer'), ('people-count', 'integer'), ('storage', 'integer'),
                  ('ssl-enabled', 'boolean')],
                 ('identified', 'timestamped'))),
    ('deal-category', ([('name', 'string')], ('identified', 'timestamped'))),
    ('task-category', ([('name', 'string'), ('color', 'string')], ('identified', 'timestamped'))),
]


def build_registry(registry=None):
    """
    Returns a SchemaRegistry with all Highrise entity types defined.
    A <party> element (as found in deals and cases) is parsed as a person
    or a company according to its <type> child, falling back to the
    company-id rule used for <record> elements.
    """
    if registry is None:
        registry = SchemaRegistry()
    for name, (fields, markers) in ENTITY_TYPES:
        define_entity(registry, name, fields, markers)

    def parse_party(node):
        partytype = (node.findtext('type') or '').strip().lower()
        if partytype not in ('person', 'company'):
            partytype = 'person' if node.find('company-id') is not None else 'company'
        parser = registry.lookup(partytype)
        if parser is None:
            logger.warning("No parser for party type '%s', returning placeholder record.", partytype)
            return Record(UNKNOWN, None, {'node': node})
        return parser(node)
    registry.register('party', parse_party)
    logger.debug("Highrise schema registry built with %s entity types.", len(registry.Parsers))
    return registry
