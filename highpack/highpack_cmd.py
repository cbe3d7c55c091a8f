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
# pylint: disable=W0621,C0103

"""
This module provides a command-line interface to various features, including:
* Listing Highrise people and companies, and their notes.
* Looking up contacts by name, email or phone.
* Listing Backpack pages, items and reminders.
* Adding list items, notes and tags to Backpack pages.
* Creating a reminder from text given on the command line or piped on stdin.

Use --testing to run against canned responses instead of the real services.
"""

import sys
import json
import pprint
import argparse
import yaml

import logging
logger = logging.getLogger(__name__)

from . import init_logging

### MODEL IMPORT ###
from .model.confighandler import ConfigHandler, DEFAULT_SYSTEM_CONFIG, DEFAULT_USER_CONFIG
from .model.server.abstract_rest_client import ServiceError
from .model.highrise.schema import Record
from .model.highrise.client import HighriseClient
from .model.highrise.directory import DirectorySearch, RESULT_FIELDS
from .model.backpack.client import BackpackClient

### TEST DOUBLES IMPORT ###
from .model.model_testdoubles.fake_confighandler import FakeConfighandler
from .model.model_testdoubles.fake_session import fake_session


confighandler = None


def getHighrise():
    """ Returns the application's Highrise client. """
    return confighandler.getSingleton('highrise')

def getBackpack():
    """ Returns the application's Backpack client. """
    return confighandler.getSingleton('backpack')


def plain(res):
    """ Convert records and ordered dicts to plain python structures, for yaml/json output. """
    if isinstance(res, Record):
        return plain(res.asdict())
    if isinstance(res, dict):
        return {key: plain(value) for key, value in res.items()}
    if isinstance(res, (list, tuple)):
        return [plain(value) for value in res]
    if hasattr(res, 'isoformat'):
        return res.isoformat()
    return res

def outputres(res, outputfmt):
    """
    Outputs the res using the specified output format.
    Format may be one of (case insensitive):
    - print
    - pretty
    - yaml
    - json
    - none (no output)
    """
    outputfmt = outputfmt.lower()
    logger.debug("Generating output for result of type %s with outputfmt %s", type(res), outputfmt)
    if outputfmt == 'print':
        print(res)
    elif outputfmt == 'pretty':
        pprint.pprint(plain(res))
    elif outputfmt == 'yaml':
        print(yaml.safe_dump(plain(res), default_flow_style=False))
    elif outputfmt == 'json':
        print(json.dumps(plain(res)))
    elif outputfmt == 'none':
        pass
    else:
        logger.error("Outputfmt '%s' not recognized!", outputfmt)
    logger.debug("Output generation complete.")


def region_text(text):
    """ Collapse the whitespace of a (possibly multi-line) text selection into single spaces. """
    return " ".join(text.split())


##################################################################
## Functions that simply use the args namespace from argparse:  ##
##################################################################

def people(args):
    """ Returns all people. """
    ret = getHighrise().people()
    outputres(ret, args.outputformat)
    return ret

def person(args):
    """ Returns the people with the given ids. """
    ret = [getHighrise().person(personid) for personid in args.personid]
    outputres(ret, args.outputformat)
    return ret

def companies(args):
    """ Returns all companies. """
    ret = getHighrise().companies()
    outputres(ret, args.outputformat)
    return ret

def company(args):
    """ Returns the companies with the given ids. """
    ret = [getHighrise().company(companyid) for companyid in args.companyid]
    outputres(ret, args.outputformat)
    return ret

def notesfor(args):
    """ Returns the notes for a person, company, case or deal. """
    ret = getattr(getHighrise(), "{}_notes".format(args.kind))(args.id)
    outputres(ret, args.outputformat)
    return ret

def search(args):
    """ Directory lookup of contacts by name, email and/or phone. """
    constraints = [(field, getattr(args, field)) for field in ('name', 'email', 'phone')
                   if getattr(args, field)]
    ret = DirectorySearch(getHighrise()).query(constraints, return_fields=args.fields)
    outputres(ret, args.outputformat)
    return ret

def pages(args):
    """ Returns all Backpack pages. """
    ret = getBackpack().list_pages()
    outputres(ret, args.outputformat)
    return ret

def page(args):
    """ Returns a Backpack page, given by id or title. """
    backpack = getBackpack()
    ret = backpack.show_page(backpack.find_page_id(args.page))
    outputres(ret, args.outputformat)
    return ret

def items(args):
    """ Returns the items of a list on a page (or of the page itself, if no list is given). """
    backpack = getBackpack()
    pageid = backpack.find_page_id(args.page)
    if args.list:
        ret = backpack.list_list_items(pageid, args.list)
    else:
        ret = backpack.list_items(pageid)
    outputres(ret, args.outputformat)
    return ret

def additem(args):
    """ Adds an item to a list on a page (or to the page itself, if no list is given). """
    backpack = getBackpack()
    pageid = backpack.find_page_id(args.page)
    content = region_text(" ".join(args.content))
    if args.list:
        ret = backpack.add_list_item(pageid, args.list, content=content)
    else:
        ret = backpack.add_item(pageid, content=content)
    outputres(ret, args.outputformat)
    return ret

def note(args):
    """ Creates a note on a page. """
    backpack = getBackpack()
    ret = backpack.create_note(backpack.find_page_id(args.page), title=args.title, body=args.body or "")
    outputres(ret, args.outputformat)
    return ret

def tag(args):
    """ Tags a page. """
    backpack = getBackpack()
    ret = backpack.tag_page(backpack.find_page_id(args.page), tags=args.tags)
    outputres(ret, args.outputformat)
    return ret

def reminders(args):
    """ Returns all upcoming reminders. """
    ret = getBackpack().list_reminders()
    outputres(ret, args.outputformat)
    return ret

def remind(args):
    """
    Creates a reminder. The text is taken from the command line or, if none
    is given, read from stdin (e.g. a region piped from an editor).
    """
    text = region_text(" ".join(args.text) if args.text else sys.stdin.read())
    if not text:
        raise ValueError("No reminder text given.")
    ret = getBackpack().create_reminder(content=text, remind_at=args.at)
    outputres(ret, args.outputformat)
    return ret

def refreshpages(args):
    """ Re-fetches the page title -> id index. """
    backpack = getBackpack()
    backpack.invalidate_page_cache()
    ret = backpack.PageIndex
    outputres(ret, args.outputformat)
    return ret

def printconfig(args):
    """ Prints the loaded configs. """
    ret = confighandler.printConfigs()
    print(ret)
    return ret


def make_parser():
    """ Returns the argparse parser for the command line interface. """
    parser = argparse.ArgumentParser(description="highpack command line interface to Highrise and Backpack.")

    # Creating sub-parsers for each command:
    subparsers = parser.add_subparsers(title='subcommands',
                                       description='valid subcommands',
                                       help='sub-command help')

    ##################################
    ### Basic command line options ###
    ##################################

    parser.add_argument('--logtofile', help="Log logging outputs to this file.")
    parser.add_argument('--loglevel', default=logging.WARNING,
                        help="Logging level to use. Higher log levels results in less output. \
                             Can be specified either as string (debug, info, warning, error), \
                             or as an integer (10, 20, 30, 40). Defaults to logging.WARNING (30).")
    parser.add_argument('--debug', metavar='<MODULES>', nargs='*',
                        help="Specify modules where you want to display logging.DEBUG messages. \
                             If no modules are specified, '--debug' will produce same effect as '--loglevel DEBUG'.")
    parser.add_argument('--config', metavar='<FILE>', help="Use this user config file instead of %s." % DEFAULT_USER_CONFIG)
    parser.add_argument('--testing', action='store_true',
                        help="Use canned responses from a fake account instead of the real services.")
    parser.add_argument('--outputformat', metavar="<FORMAT>", default="pretty",
                        help="How to format the output: PRINT, PRETTY, YAML, JSON. \
                             Use NONE to supress normal output. Default is to do pretty print.")

    ##########################
    ### Highrise commands ####
    ##########################

    subparser = subparsers.add_parser('people', help='List all people.')
    subparser.set_defaults(func=people)

    subparser = subparsers.add_parser('person', help='Show one or more people.')
    subparser.add_argument('personid', metavar="<PersonId>", type=int, nargs='+', help='Id(s) of the people to show.')
    subparser.set_defaults(func=person)

    subparser = subparsers.add_parser('companies', help='List all companies.')
    subparser.set_defaults(func=companies)

    subparser = subparsers.add_parser('company', help='Show one or more companies.')
    subparser.add_argument('companyid', metavar="<CompanyId>", type=int, nargs='+', help='Id(s) of the companies to show.')
    subparser.set_defaults(func=company)

    subparser = subparsers.add_parser('notes-for', help='List the notes for a person, company, case or deal.')
    subparser.add_argument('kind', choices=('people', 'companies', 'kases', 'deals'))
    subparser.add_argument('id', type=int)
    subparser.set_defaults(func=notesfor)

    subparser = subparsers.add_parser('search', help='Look up contacts by name, email and/or phone.')
    subparser.add_argument('--name', help="Part of the contact's name (case insensitive).")
    subparser.add_argument('--email', help="One of the contact's email addresses.")
    subparser.add_argument('--phone', help="One of the contact's phone numbers.")
    subparser.add_argument('--fields', nargs='+', choices=RESULT_FIELDS,
                           help="Only return these fields; contacts where any of them is empty are left out.")
    subparser.set_defaults(func=search)

    ##########################
    ### Backpack commands ####
    ##########################

    subparser = subparsers.add_parser('pages', help='List all pages.')
    subparser.set_defaults(func=pages)

    subparser = subparsers.add_parser('page', help='Show a page.')
    subparser.add_argument('page', help="Page id or title.")
    subparser.set_defaults(func=page)

    subparser = subparsers.add_parser('items', help='List the items of a list on a page.')
    subparser.add_argument('page', help="Page id or title.")
    subparser.add_argument('--list', type=int, help="List id. If not given, uses the old page items call.")
    subparser.set_defaults(func=items)

    subparser = subparsers.add_parser('add-item', help='Add an item to a list on a page.')
    subparser.add_argument('page', help="Page id or title.")
    subparser.add_argument('content', nargs='+', help="The item text.")
    subparser.add_argument('--list', type=int, help="List id. If not given, uses the old page items call.")
    subparser.set_defaults(func=additem)

    subparser = subparsers.add_parser('note', help='Create a note on a page.')
    subparser.add_argument('page', help="Page id or title.")
    subparser.add_argument('title')
    subparser.add_argument('body', nargs='?')
    subparser.set_defaults(func=note)

    subparser = subparsers.add_parser('tag', help='Tag a page.')
    subparser.add_argument('page', help="Page id or title.")
    subparser.add_argument('tags', nargs='+')
    subparser.set_defaults(func=tag)

    subparser = subparsers.add_parser('reminders', help='List upcoming reminders.')
    subparser.set_defaults(func=reminders)

    subparser = subparsers.add_parser('remind', help='Create a reminder from text (read from stdin if not given).')
    subparser.add_argument('text', nargs='*')
    subparser.add_argument('--at', help="When to remind, e.g. '2014-03-05 09:00:00'. \
                           Alternatively, start the text with e.g. '+180' for 'in 180 minutes'.")
    subparser.set_defaults(func=remind)

    subparser = subparsers.add_parser('refresh-pages', help='Re-fetch the page title index.')
    subparser.set_defaults(func=refreshpages)

    subparser = subparsers.add_parser('printconfig', help='Print the loaded configs.')
    subparser.set_defaults(func=printconfig)

    return parser


def setup_environment(argsns):
    """
    Set up confighandler and the service clients (depending on whether testing mode is requested).
    Returns the confighandler.
    """
    global confighandler
    if argsns.testing:
        logger.info("Enabling testing environment...")
        confighandler = FakeConfighandler()
        session = fake_session()
    else:
        confighandler = ConfigHandler(systemconfigfn=DEFAULT_SYSTEM_CONFIG,
                                      userconfigfn=argsns.config or DEFAULT_USER_CONFIG)
        confighandler.autoRead()
        session = None
    confighandler.setSingleton('highrise', HighriseClient(confighandler=confighandler, session=session))
    confighandler.setSingleton('backpack', BackpackClient(confighandler=confighandler, session=session))
    return confighandler


def main(argv=None):
    """ Entry point for the highpack command. Returns the exit code. """
    parser = make_parser()
    argsns = parser.parse_args(argv) # produces a namespace, not a dict.

    init_logging(argsns, prefix="highpack_cmd")
    setup_environment(argsns)

    # Test if default func is defined after parsing:
    func = getattr(argsns, 'func', None)
    if not func:
        parser.print_help()
        return 2
    logger.debug("Executing function %s with argsns %s", func, argsns)
    try:
        func(argsns)
    except (ServiceError, ValueError) as e:
        logger.error("%s failed: %s", func.__name__, e)
        print("Error: {}".format(e), file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
