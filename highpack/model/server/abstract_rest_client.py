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
Abstract REST client module. Provides the AbstractRestClient base class
and the ServiceError exception raised by all clients.

Both services speak XML over plain HTTP:
* Highrise: GET requests, token as HTTP basic auth user.
* Backpack: POST requests, token inside the XML request body.

The transport is a requests.Session; XML is parsed with lxml.etree.
Every request is a single blocking round trip; there are no retries.
"""

import requests
from lxml import etree

import logging
logger = logging.getLogger(__name__)

from .abstract_clients import AbstractClient


class ServiceError(Exception):
    """
    Raised when a service request fails, either because the server could not be
    reached, returned a non-2xx status, or reported the request as unsuccessful.
    Attributes:
    * code : The vendor's error code (e.g. '100'), or the HTTP status code, or None.
    * message : Human readable message.
    """
    def __init__(self, message, code=None):
        super(ServiceError, self).__init__(message)
        self.message = message
        self.code = code

    def __str__(self):
        if self.code is not None:
            return "[{}] {}".format(self.code, self.message)
        return self.message


class AbstractRestClient(AbstractClient):
    """
    Base class for the XML-over-HTTP service clients.

    Sub-classes should set self._defaultparams and then call self.setup_rest_api().
    Relevant server params (see AbstractClient for how they are resolved):
    * server : account sub-domain, e.g. 'acme'
    * domain : service domain, e.g. 'highrisehq.com'
    * scheme : 'http' or 'https'
    * urlpostfix : path to the API, e.g. '/ws'
    * timeout : request timeout in seconds.
    * debug : keep the last response in self.LastResponse rather than closing it.
    """
    def __init__(self, serverparams=None, token=None, confighandler=None, session=None):
        logger.debug("New %s initializing...", self.__class__.__name__)
        super(AbstractRestClient, self).__init__(serverparams=serverparams, token=token,
                                                 confighandler=confighandler)
        self.Session = session
        self.Headers = {'Content-Type': 'application/xml', 'Accept': 'application/xml'}
        self.LastResponse = None
        self._apiurl = None

    def setup_rest_api(self):
        """
        Performs common REST api setup.
        Call after setting self._defaultparams
        """
        if self.Session is None:
            self.Session = requests.Session()
        self.Session.headers.update({'User-Agent': self.UserAgent})
        self._apiurl = self.AppUrl
        if not self._apiurl:
            logger.warning("%s: AppUrl is '%s'; configure '%s'.", self.__class__.__name__, self._apiurl,
                           self.CONFIG_FORMAT.format('serverparams'))
            return None
        logger.info("%s - Using REST API url: %s", self.__class__.__name__, self._apiurl)
        return self._apiurl

    @property
    def ApiUrl(self):
        """ The API url, as determined during setup (or re-determined if setup did not find it). """
        if not self._apiurl:
            self._apiurl = self.AppUrl
        return self._apiurl

    def make_url(self, path):
        """ Returns the full url for an API path, e.g. 'people.xml'. """
        apiurl = self.ApiUrl
        if not apiurl:
            raise ServiceError("No server configured for {}.".format(self.__class__.__name__))
        return "/".join((apiurl.rstrip('/'), path.lstrip('/')))

    def request(self, method, path, **kwargs):
        """
        Perform a single blocking HTTP request, returning the response.
        Connection problems are raised as ServiceError; the status code is NOT checked here.
        """
        url = self.make_url(path)
        kwargs.setdefault('headers', self.Headers)
        kwargs.setdefault('timeout', self.Timeout)
        logger.debug("%s %s", method.upper(), url)
        try:
            response = self.Session.request(method, url, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.info("%s: could not connect to %s: %s", self.__class__.__name__, url, e)
            self.notok()
            raise ServiceError("Could not connect to {}: {}".format(url, e))
        logger.debug("%s %s returned status %s", method.upper(), url, response.status_code)
        return response

    def get(self, path, params=None):
        """ Make a standard REST API HTTP GET request. """
        return self.request('get', path, params=params)

    def post(self, path, data=None):
        """ Make a standard REST API HTTP POST request. """
        return self.request('post', path, data=data)

    def check_status(self, response):
        """ Raise ServiceError if the response status is outside 200-299. """
        if not 200 <= response.status_code < 300:
            self.release(response)
            raise ServiceError("Server returned HTTP status {}".format(response.status_code),
                               code=response.status_code)
        self.setok()
        return response

    def parse_xml(self, response):
        """
        Parse the response body, returning the root lxml element, or None if
        the body is empty or not well-formed XML.
        """
        content = response.content
        if not content or not content.strip():
            return None
        try:
            return etree.fromstring(content)
        except etree.XMLSyntaxError as e:
            logger.warning("Could not parse response body as XML: %s", e)
            return None

    def release(self, response):
        """
        Release the response once parsed, unless the debug server param is set,
        in which case the response is kept in self.LastResponse.
        """
        if self.Debug:
            self.LastResponse = response
        else:
            response.close()
