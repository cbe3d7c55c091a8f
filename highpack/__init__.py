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
# pylint: disable=C0103,W0212
"""
highpack: clients for the Highrise CRM and Backpack organizer XML APIs.

Applications:
- highpack (highpack_cmd) : Command line interface for the model API, e.g.
                            listing contacts, looking up an address,
                            adding list items and creating reminders.
"""

import os
import logging
logging.addLevelName(4, 'SPAM')
logger = logging.getLogger(__name__)

LOGFMT = "%(levelname)s %(name)s:%(lineno)s %(funcName)s() > %(message)s"
FILELOGFMT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def getLoglevelInt(loglevel, default=logging.WARNING):
    """
    Returns loglevel as an integer, e.g. 'debug' -> 10, '20' -> 20, 30 -> 30.
    Unrecognized levels give default.
    """
    if loglevel is None:
        return default
    try:
        return int(loglevel)
    except ValueError:
        level = logging.getLevelName(str(loglevel).upper())
        if isinstance(level, int):
            return level
    logger.warning("Loglevel '%s' not recognized, using %s", loglevel, default)
    return default


def init_logging(argsns=None, prefix="highpack"):
    """
    Set up the standard logging system from an argparse namespace with attributes:
    * loglevel : root log level (name or number).
    * debug : None, or a (possibly empty) list of modules to log DEBUG messages for.
              An empty list means debug for everything.
    * logtofile : filename to log to (always at DEBUG level).
    * testing : if True, the test double loggers are set to DEBUG.
    Returns the list of handlers added to the root logger.
    """
    loglevel = getLoglevelInt(getattr(argsns, 'loglevel', None))
    debug = getattr(argsns, 'debug', None)
    if debug is not None and not debug:
        # '--debug' with no modules
        loglevel = min(logging.DEBUG, loglevel)

    handlers = list()
    rootlogger = logging.getLogger()
    rootlogger.setLevel(min(loglevel, logging.DEBUG) if getattr(argsns, 'logtofile', None) else loglevel)

    streamhandler = logging.StreamHandler()
    streamhandler.setLevel(loglevel)
    streamhandler.setFormatter(logging.Formatter(LOGFMT))
    rootlogger.addHandler(streamhandler)
    handlers.append(streamhandler)

    logtofile = getattr(argsns, 'logtofile', None)
    if logtofile:
        logdir = os.path.dirname(logtofile)
        if logdir and not os.path.exists(logdir):
            os.makedirs(logdir)
        filehandler = logging.FileHandler(logtofile)
        filehandler.setLevel(logging.DEBUG)
        filehandler.setFormatter(logging.Formatter(FILELOGFMT))
        rootlogger.addHandler(filehandler)
        handlers.append(filehandler)
        logger.info("%s: logging to file %s", prefix, logtofile)

    if debug:
        for mod in debug:
            logger.info("Enabling logging debug messages for module: %s", mod)
            modlogger = logging.getLogger(mod)
            modlogger.setLevel(logging.DEBUG)
            # The root stream handler filters at loglevel, so debug modules get their own handler.
            debughandler = logging.StreamHandler()
            debughandler.setLevel(logging.DEBUG)
            debughandler.setFormatter(logging.Formatter(LOGFMT))
            modlogger.addHandler(debughandler)
            modlogger.propagate = False
            handlers.append(debughandler)

    if getattr(argsns, 'testing', False):
        logging.getLogger("highpack.model.model_testdoubles").setLevel(logging.DEBUG)

    logger.debug("%s: logging initialized with loglevel %s, debug modules: %s", prefix, loglevel, debug)
    return handlers
