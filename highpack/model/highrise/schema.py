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
# pylint: disable=C0103,C0301,R0903,R0913
"""
Schema module. Turns Highrise XML elements into Record objects.

An entity type is defined by a name, a list of (element name, element type)
field specs, and a list of markers:

    define_entity(registry, 'person',
                  [('first-name', 'string'), ('last-name', 'string'), ('company-id', 'integer')],
                  markers=('party',))

Element types are:
* 'string'   : text content of the element ("" if empty)
* 'integer'  : int of the text content (0 if empty or not a number)
* 'datetime' : datetime parsed from the text content (None if empty or unparseable)
* 'boolean'  : True if the text content is 'true'
* ('type', <name>)  : the child is parsed by the registered <name> parser.
* ('array', <name>) : every element child is parsed by the registered <name> parser.
Any element with nil="true" parses to None.

Markers imply a fixed set of fields, so that e.g. every 'owned' entity gets
id, created-at, updated-at, author-id and owner-id without repeating them.
See MARKERS.

Parsers are kept in a SchemaRegistry. Create one with entities.build_registry()
and hand it to whoever needs to parse Highrise XML.
"""

from collections import OrderedDict
from dateutil import parser as dateutil_parser

import logging
logger = logging.getLogger(__name__)


UNKNOWN = 'unknown'

# marker : (implied markers, implied fields)
MARKERS = OrderedDict([
    ('identified', ((), [('id', 'integer')])),
    ('timestamped', ((), [('created-at', 'datetime'), ('updated-at', 'datetime')])),
    ('owned', (('identified', 'timestamped'), [('author-id', 'integer'), ('owner-id', 'integer')])),
    ('visible', ((), [('visible-to', 'string'), ('group-id', 'integer')])),
    ('editable', (('owned', 'visible'), [])),
    ('subject', ((), [('subject-id', 'integer'), ('subject-type', 'string'), ('subject-name', 'string')])),
    ('located', ((), [('contact-data', ('type', 'contact-data'))])),
    # Notes and emails ("letters"):
    ('noted', (('editable', 'subject'), [('body', 'string'), ('collection-id', 'integer'),
                                          ('collection-type', 'string')])),
    # People and companies:
    ('party', (('editable', 'located'), [('background', 'string'), ('avatar-url', 'string'),
                                          ('tags', ('array', 'tag'))])),
])


class Record(object):
    """
    A parsed Highrise entity: a type tag, the numeric id (or None),
    and an ordered mapping of field key -> value.
    Field keys are the element names with '-' replaced by '_', e.g. 'first_name'.
    """
    def __init__(self, tag, id=None, fields=None): # pylint: disable=W0622
        self.tag = tag
        self.id = id
        self.fields = OrderedDict(fields or ())

    def __getitem__(self, key):
        return self.fields[key]

    def __contains__(self, key):
        return key in self.fields

    def get(self, key, default=None):
        """ dict-like get on the record's fields. """
        return self.fields.get(key, default)

    def __eq__(self, other):
        if not isinstance(other, Record):
            return NotImplemented
        return (self.tag, self.id, self.fields) == (other.tag, other.id, other.fields)

    __hash__ = None

    def __repr__(self):
        return "Record({!r}, {!r}, {})".format(self.tag, self.id, dict(self.fields))

    def asdict(self):
        """
        Returns a plain dict representation (recursively), suitable for yaml/json output.
        """
        def convert(value):
            if isinstance(value, Record):
                return value.asdict()
            if isinstance(value, list):
                return [convert(v) for v in value]
            if hasattr(value, 'isoformat'):
                return value.isoformat()
            if hasattr(value, 'tag') and not isinstance(value, str):
                # raw lxml element of an unknown record
                return "<{}>".format(value.tag)
            return value
        d = OrderedDict(type=self.tag)
        d.update((key, convert(value)) for key, value in self.fields.items())
        return d


def field_key(elementname):
    """ 'first-name' -> 'first_name' """
    return elementname.replace('-', '_')

def element_children(node):
    """ Returns the element children of node, skipping comments and processing instructions. """
    return [child for child in node if isinstance(child.tag, str)]

def is_nil(node):
    return node.get('nil') == 'true'


## Primitive parsers ##

def parse_string(node):
    """ Concatenated text content of node. """
    if is_nil(node):
        return None
    return str(node.xpath('string()'))

def parse_integer(node):
    """ Integer value of node; 0 if empty or not a number. """
    if is_nil(node):
        return None
    text = str(node.xpath('string()')).strip()
    try:
        return int(text)
    except ValueError:
        if text:
            logger.debug("Could not parse integer from <%s>: '%s'", node.tag, text)
        return 0

def parse_datetime(node):
    """ datetime value of node; None if empty or not a date. """
    if is_nil(node):
        return None
    text = str(node.xpath('string()')).strip()
    if not text:
        return None
    try:
        return dateutil_parser.parse(text)
    except (ValueError, OverflowError) as e:
        logger.warning("Could not parse datetime from <%s>: '%s' (%s)", node.tag, text, e)
        return None

def parse_boolean(node):
    if is_nil(node):
        return None
    return str(node.xpath('string()')).strip().lower() == 'true'

PRIMITIVE_PARSERS = {
    'string': parse_string,
    'integer': parse_integer,
    'datetime': parse_datetime,
    'boolean': parse_boolean,
}


class SchemaRegistry(object):
    """
    Maps entity type names to parser functions.

    The registry is populated with define_entity() and is then only read.
    parse(node) is the generic entry point, dispatching on the node as
    determined by resolve(node).
    """
    # type attributes that take precedence over the element name:
    TYPE_OVERRIDES = ('array', 'integer', 'datetime')

    def __init__(self):
        self.Parsers = OrderedDict()
        self.Fields = dict()

    def __contains__(self, name):
        return name in self.Parsers

    def register(self, name, parser, fields=None):
        """ Register parser for entity type <name>, replacing any existing parser. """
        if name in self.Parsers:
            logger.info("Re-defining entity type '%s'", name)
        self.Parsers[name] = parser
        self.Fields[name] = fields
        return parser

    def lookup(self, name):
        """ Returns the parser for entity type <name>, or None. """
        return self.Parsers.get(name)

    def resolve(self, node):
        """
        Determine how to parse node. Returns one of:
        * 'array', 'integer', 'datetime' : if the node has that type attribute.
        * 'person' or 'company' for a <record> node, depending on whether it has a company-id child,
          provided a parser is registered for that type.
        * the node's tag, if a parser is registered for it.
        * UNKNOWN.
        The order of the checks matters; the type attribute is checked first.
        """
        nodetype = node.get('type')
        if nodetype in self.TYPE_OVERRIDES:
            return nodetype
        if node.tag == 'record':
            # Only people belong to a company.
            variant = 'person' if node.find('company-id') is not None else 'company'
            if variant in self.Parsers:
                return variant
        if node.tag in self.Parsers:
            return node.tag
        return UNKNOWN

    def parse(self, node):
        """
        Parse any Highrise element. Never raises on unrecognized elements;
        these are returned as Record(UNKNOWN, None, {'node': node}).
        """
        variant = self.resolve(node)
        if variant == 'array':
            return [self.parse(child) for child in element_children(node)]
        if variant == 'integer':
            return parse_integer(node)
        if variant == 'datetime':
            return parse_datetime(node)
        if variant == UNKNOWN:
            logger.warning("Unknown element <%s>, returning placeholder record.", node.tag)
            return Record(UNKNOWN, None, {'node': node})
        return self.Parsers[variant](node)

    def parse_as(self, name, node):
        """ Parse node with the parser for <name>, falling back to generic parsing. """
        parser = self.lookup(name)
        if parser is None:
            logger.debug("No parser registered for '%s', using generic parse for <%s>", name, node.tag)
            return self.parse(node)
        return parser(node)


def expand_markers(markers, seen=None):
    """
    Returns the list of implied (element name, type) fields for markers,
    implied markers first, each marker only once.
    """
    if seen is None:
        seen = set()
    fields = []
    for marker in markers:
        if marker in seen:
            continue
        seen.add(marker)
        try:
            implied_markers, implied_fields = MARKERS[marker]
        except KeyError:
            raise ValueError("Unknown marker: {!r}".format(marker))
        fields.extend(expand_markers(implied_markers, seen))
        fields.extend(implied_fields)
    return fields

def compose_fields(fields, markers=()):
    """
    Combine the fields implied by markers with the declared fields.
    Marker fields come first; a declared field replaces an implied field of the same name in place.
    """
    composed = OrderedDict()
    for name, ftype in expand_markers(markers):
        composed.setdefault(name, ftype)
    for name, ftype in fields:
        composed[name] = ftype
    return list(composed.items())


def make_field_parser(registry, ftype):
    """ Returns a function parsing a single field element of type ftype. """
    if isinstance(ftype, str):
        try:
            return PRIMITIVE_PARSERS[ftype]
        except KeyError:
            raise ValueError("Unknown element type: {!r}".format(ftype))
    kind, typename = ftype
    # Nested types are looked up when parsing, so types can be defined in any order.
    if kind == 'type':
        def parse_nested(node):
            if is_nil(node):
                return None
            return registry.parse_as(typename, node)
        return parse_nested
    if kind == 'array':
        def parse_array(node):
            return [registry.parse_as(typename, child) for child in element_children(node)]
        return parse_array
    raise ValueError("Unknown element type: {!r}".format(ftype))


def define_entity(registry, name, fields, markers=()):
    """
    Define entity type <name> from field specs and markers, register the
    resulting parser in registry and return it.
    The parser returns a Record with every schema field; fields missing from the XML are None.
    """
    allfields = compose_fields(fields, markers)
    parsers = [(elementname, field_key(elementname), make_field_parser(registry, ftype))
               for elementname, ftype in allfields]

    def parse_entity(node):
        values = OrderedDict()
        for elementname, key, fparser in parsers:
            child = node.find(elementname)
            values[key] = fparser(child) if child is not None else None
        return Record(name, values.get('id'), values)

    parse_entity.__name__ = "parse_" + field_key(name)
    parse_entity.__doc__ = "Parse a <{}> element.".format(name)
    logger.debug("Defined entity '%s' with fields: %s", name, [f for f, _ in allfields])
    return registry.register(name, parse_entity, allfields)
