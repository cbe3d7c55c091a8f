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
# pylint: disable=C0103,C0301
"""
Directory search over Highrise contacts, as used by address-book style lookups:

    >>> directory = DirectorySearch(highrise_client)
    >>> directory.query([('name', 'Alice')], return_fields=['email'])
    [OrderedDict([('email', 'alice@example.com')])]

All people and companies are fetched and filtered client side.
"""

from collections import OrderedDict

import logging
logger = logging.getLogger(__name__)


QUERY_FIELDS = ('name', 'email', 'phone')
RESULT_FIELDS = ('firstname', 'lastname', 'name', 'phone', 'email')


def contact_values(record, arrayname, valuename):
    """ Returns the non-empty <valuename> values in the record's contact-data <arrayname> array. """
    contact = record.get('contact_data')
    if not contact:
        return []
    return [entry.get(valuename) for entry in (contact.get(arrayname) or []) if entry.get(valuename)]


class DirectorySearch(object):
    """
    Directory lookup backend for Highrise.
    client must provide contacts(), returning person and company records.
    """
    def __init__(self, client):
        self.Client = client

    def flatten(self, record):
        """
        Returns (projection, emails, phones) for a contact record, where
        projection has keys firstname, lastname, name, phone, email.
        """
        if record.tag == 'person':
            firstname = record.get('first_name') or ''
            lastname = record.get('last_name') or ''
            name = " ".join(part for part in (firstname, lastname) if part)
        else:
            firstname = lastname = ''
            name = record.get('name') or ''
        emails = contact_values(record, 'email_addresses', 'address')
        phones = contact_values(record, 'phone_numbers', 'number')
        projection = OrderedDict([('firstname', firstname),
                                  ('lastname', lastname),
                                  ('name', name),
                                  ('phone', ", ".join(phones)),
                                  ('email', ", ".join(emails))])
        return projection, emails, phones

    def matches(self, constraints, projection, emails, phones):
        """
        Name matches as a case-insensitive substring;
        email and phone must equal one of the contact's values.
        """
        for field, pattern in constraints:
            if field == 'name':
                if pattern.lower() not in projection['name'].lower():
                    return False
            elif field == 'email':
                if pattern not in emails:
                    return False
            elif field == 'phone':
                if pattern not in phones:
                    return False
        return True

    def query(self, constraints, return_fields=None):
        """
        Search contacts.
        constraints : list of (field, pattern) pairs (or a dict), field in 'name', 'email', 'phone'.
        return_fields : optional list of the fields to return. Records where any of these
                        fields is empty are left out of the result.
        Returns a list of OrderedDicts.
        """
        if isinstance(constraints, dict):
            constraints = list(constraints.items())
        constraints = list(constraints)
        unsupported = [field for field, _ in constraints if field not in QUERY_FIELDS]
        if unsupported:
            raise ValueError("Cannot query on field(s) {}; supported fields are {}.".format(
                ", ".join(unsupported), ", ".join(QUERY_FIELDS)))
        if return_fields:
            unknown = [field for field in return_fields if field not in RESULT_FIELDS]
            if unknown:
                raise ValueError("Unknown return field(s): {}".format(", ".join(unknown)))

        results = []
        records = self.Client.contacts() or []
        for record in records:
            projection, emails, phones = self.flatten(record)
            if not self.matches(constraints, projection, emails, phones):
                continue
            if return_fields:
                projection = OrderedDict((field, projection[field]) for field in return_fields)
                if not all(projection.values()):
                    logger.debug("Skipping '%s': empty value for one of %s", record.get('name') or record.id, return_fields)
                    continue
            results.append(projection)
        logger.info("Directory query %s matched %s of %s contacts.", constraints, len(results), len(records))
        return results
