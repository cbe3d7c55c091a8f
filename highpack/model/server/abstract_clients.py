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
# pylint: disable=C0103,C0301,W0142,R0902,R0904,R0913,R0201,R0912
"""
Abstract clients module. Provides the AbstractClient base class.

AbstractClient serves two purposes:
1) Define a standard "client" interface, specifying what properties
a service client is expected to have.
2) Define the basic client functionality which is common to the
Highrise and Backpack clients, mostly resolving configuration:

    runtime params  >  config params  >  hardcoded defaults

where config params are read from the confighandler entry
'<prefix>_serverparams', e.g. 'highrise_serverparams'.
"""

import logging
logger = logging.getLogger(__name__)

from ..decorators.cache_decorator import cached_property

__version__ = "0.3.0"


class AbstractClient(object):
    """
    Base class for the service clients.

    To test if a client is connected, just use "if client".
    (To test whether a client was not initialized, use the more specific "if client is None")
    """
    # Format for config keys, e.g. 'highrise_{}' -> 'highrise_token'. Override in sub-classes.
    CONFIG_FORMAT = 'server_{}'

    def __init__(self, serverparams=None, token=None, confighandler=None):
        logger.debug("AbstractClient init started.")
        self._defaultparams = None  # override in sub-classes
        self._serverparams = serverparams
        self._token = token
        self.Confighandler = confighandler
        self._connectionok = None # None = Not tested, False/True: Whether the last request failed or succeeded.

    # Properties
    @property
    def Token(self):
        """
        Property: Returns the API token to use (if available).
        Highrise calls it the "authentication token", Backpack the "API key".
        """
        if self._token:
            return self._token
        if self.Confighandler:
            return self.Confighandler.get(self.CONFIG_FORMAT.format('token'), None)
    @Token.setter
    def Token(self, newtoken):
        "Property setter: Sets the token to use at runtime."
        self._token = newtoken

    @property
    def Serverparams(self):
        """ Property; Returns the effective server parameters, combined from all sources. """
        params = dict(self._defaultparams or {})
        if self.Confighandler:
            config_params = self.Confighandler.get(self.CONFIG_FORMAT.format('serverparams')) or {}
            logger.debug("config_params: %s", config_params)
            params.update(config_params)
        params.update(self._serverparams or {})
        return params

    def configs_iterator(self):
        """ Returns an iterator over the various config sources. """
        yield ('runtime params', self._serverparams)
        if self.Confighandler:
            yield ('config params', self.Confighandler.get(self.CONFIG_FORMAT.format('serverparams'), dict()))
        yield ('hardcoded defaults', self._defaultparams)

    def getServerParam(self, key, default=None):
        """ Returns a particular configuration parameter key. """
        for desc, cfg in self.configs_iterator():
            if cfg and key in cfg:
                logger.debug("Returning %s from %s[%s]", cfg[key], desc, key)
                return cfg[key]
        logger.debug("param '%s' not found, returning default %s.", key, default)
        return default

    @property
    def Server(self):
        """ The account's sub-domain, e.g. 'acme' for acme.highrisehq.com. """
        return self.getServerParam('server')
    @property
    def Domain(self):
        """ The service's domain, e.g. 'highrisehq.com'. """
        return self.getServerParam('domain')
    @property
    def Hostname(self):
        """
        Returns the server's hostname. Can be given explicitly as 'hostname',
        otherwise it is made from the 'server' and 'domain' params.
        """
        hostname = self.getServerParam('hostname')
        if hostname:
            return hostname
        server, domain = self.Server, self.Domain
        if server and domain:
            return "{}.{}".format(server, domain)
    @property
    def Scheme(self):
        """ Returns the URI scheme (e.g. http/https) by querying the server config. """
        return self.getServerParam('scheme', 'http')
    @property
    def Port(self):
        """ Returns the server's port by querying the server config. """
        return self.getServerParam('port')
    @property
    def UrlPostfix(self):
        """ Returns the url postfix to the API, e.g. '/ws' for backpack. """
        return self.getServerParam('urlpostfix') or ""
    @property
    def BaseUrl(self):
        """ Returns the server's base url, e.g. http://acme.highrisehq.com """
        baseurl = self.getServerParam('baseurl')
        if baseurl:
            return baseurl
        hostname = self.Hostname
        if not hostname:
            return None
        url = "{}://{}".format(self.Scheme, hostname)
        port = self.Port
        if port and int(port) not in (80, 443):
            url += ":{}".format(port)
        return url
    @property
    def AppUrl(self):
        """ Returns the application url, i.e. BaseUrl + UrlPostfix. """
        url = self.getServerParam('appurl')
        if url:
            return url
        baseurl = self.BaseUrl
        logger.debug("baseurl: %s     urlpostfix: %s", baseurl, self.UrlPostfix)
        if baseurl:
            return baseurl + self.UrlPostfix
        return None
    @property
    def Debug(self):
        """ If True, responses are kept for inspection instead of being closed after parsing. """
        return bool(self.getServerParam('debug', False))
    @property
    def Timeout(self):
        """ Request timeout in seconds (None = wait forever). """
        return self.getServerParam('timeout')

    @cached_property(ttl=30)
    def CachedConnectStatus(self):
        """ Cached connection status, returning result of self.test_connection. """
        return self.test_connection()

    @property
    def UserAgent(self):
        """ User-Agent string reported to the server. """
        return "highpack/{version} ({cls})".format(version=__version__, cls=self.__class__.__name__)

    def __bool__(self):
        return bool(self._connectionok)

    def test_connection(self):
        """
        Should be overridden by child classes.
        Must return True if connection can be established, false otherwise.
        """
        return False

    def _statusEntry(self):
        return self.CONFIG_FORMAT.format('server_status')

    def setok(self):
        """ Invoke to indicate that the client is properly connected. """
        if not self._connectionok:
            self._connectionok = True
            if self.Confighandler:
                logger.debug("Invoking confighandler entry change callbacks for '%s'", self._statusEntry())
                self.Confighandler.invokeEntryChangeCallback(self._statusEntry())
        logger.debug("%s: _connectionok is now: %s", self.__class__.__name__, self._connectionok)

    def notok(self):
        """ Invoke to indicate that the client is NOT properly connected. """
        logger.debug("notok() invoked, earlier value of self._connectionok is: %s", self._connectionok)
        if self._connectionok is not False:
            self._connectionok = False
            if self.Confighandler:
                self.Confighandler.invokeEntryChangeCallback(self._statusEntry())
        logger.debug("%s: _connectionok is now: %s", self.__class__.__name__, self._connectionok)
