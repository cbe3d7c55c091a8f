#!/usr/bin/env python
# -*- coding: utf-8 -*-
##    Copyright 2013 Rasmus Scholer Sorensen, rasmusscholer@gmail.com
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
# pylint: disable=W0212,R0903,C0103,W0201
"""
Cached property decorator.

Used by the clients for values that are expensive to obtain from the server,
e.g. the backpack page-title index.

Based on the cached_property by Christopher Arndt,
https://wiki.python.org/moin/PythonDecoratorLibrary#Cached_Properties
(© 2011 Christopher Arndt, MIT License)
"""

import time
import logging
logger = logging.getLogger(__name__)


class cached_property(object):
    '''
    Decorator for making cached properties with read/write/expire ability.
    The property is evaluated only once within the TTL period, unless explicitly
    expired or re-set.

        class BackpackClient(object):
            @cached_property(ttl=0)     # never expires by itself
            def PageIndex(self):
                return self.fetch_page_index()

        client.PageIndex            # Fetched from server.
        client.PageIndex            # Cached.
        del client.PageIndex        # Expire the cache.
        client.PageIndex            # Fetched from server again.

    * ttl > 0: value expires after ttl seconds.
    * ttl == 0: value never expires, only by deletion.
    * ttl < 0: value is always expired (caching disabled).

    The value is cached in the '_cache' dict attribute of the instance, keyed by
    property name, as a (value, timestamp) tuple.

    Note that the decorator must be instantiated before it is used:
        @cached_property()  # Notice the parenthesis
    '''
    def __init__(self, ttl=300):
        self.ttl = ttl

    def __call__(self, fget, doc=None):
        self.fget = fget
        self.__doc__ = doc or fget.__doc__
        self.__name__ = fget.__name__
        self.__module__ = fget.__module__
        return self

    def __get__(self, inst, owner):
        if inst is None:
            return self
        now = time.time()
        try:
            value, last_update = inst._cache[self.__name__]
            if self.ttl < 0 or (self.ttl > 0 and now - last_update > self.ttl):
                raise AttributeError
        except (KeyError, AttributeError):
            value = self.fget(inst)
            try:
                cache = inst._cache
            except AttributeError:
                cache = inst._cache = {}
            cache[self.__name__] = (value, now)
        return value

    def __set__(self, inst, value):
        """ Re-set the cached value, e.g. if it was obtained elsewhere. """
        logger.debug("__set__ invoked with inst '%s' and value '%s'", inst, value)
        try:
            cache = inst._cache
        except AttributeError:
            cache = inst._cache = {}
        cache[self.__name__] = (value, time.time())

    def __delete__(self, inst):
        logger.debug("Deleting cache for property '%s'", self.__name__)
        try:
            del inst._cache[self.__name__]
        except (AttributeError, KeyError) as e:
            logger.debug("No cached value for '%s' on inst '%s', nothing to delete. (%r)", self.__name__, inst, e)
