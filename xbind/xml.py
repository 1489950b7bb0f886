########################################################################
# File name: xml.py
# This file is part of: xbind
#
# LICENSE
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public
# License along with this program.  If not, see
# <http://www.gnu.org/licenses/>.
#
########################################################################
"""
:mod:`~xbind.xml` --- XML writer and parser configuration
#########################################################

This module provides the streaming writer used to generate documents from
extension objects and a few functions to drive whole documents through it.

Generating XML
==============

.. autoclass:: XMLWriter

Parsing XML
===========

.. autofunction:: make_parser

Utility functions
=================

.. autofunction:: serialize

.. autofunction:: write_document

.. autofunction:: read_document

"""
import io

import xml.sax
import xml.sax.handler
import xml.sax.saxutils

from . import structs
from .utils import namespaces


_NAME_START_CHAR = [
    [ord(":"), ord("_")],
    range(ord("a"), ord("z")+1),
    range(ord("A"), ord("Z")+1),
    range(0xc0, 0xd7),
    range(0xd8, 0xf7),
    range(0xf8, 0x300),
    range(0x370, 0x37e),
    range(0x37f, 0x2000),
    range(0x200c, 0x200e),
    range(0x2070, 0x2190),
    range(0x2c00, 0x2ff0),
    range(0x3001, 0xd800),
    range(0xf900, 0xfdd0),
    range(0xfdf0, 0xfffe),
    range(0x10000, 0xf0000),
]

_NAME_CHAR = _NAME_START_CHAR + [
    [ord("-"), ord("."), 0xb7],
    range(ord("0"), ord("9")+1),
    range(0x0300, 0x0370),
    range(0x203f, 0x2041),
]
_NAME_CHAR.sort(key=lambda x: x[0])

XML_NAMESPACE = structs.Namespace("xml", namespaces.xml)


def xmlValidateNameValue_str(s):
    if not s:
        return False
    ch = ord(s[0])
    if not any(ch in range_ for range_ in _NAME_START_CHAR):
        return False
    return all(
        any(ch in range_ for range_ in _NAME_CHAR)
        for ch in map(ord, s)
    )


def is_valid_cdata_str(s):
    for c in s:
        o = ord(c)
        if o >= 32:
            continue
        if o < 9 or 11 <= o <= 12 or 14 <= o <= 31:
            return False

    return True


class XMLWriter:
    """
    Write XML text to a file-like object.

    :param out: File-like object to which the text is written.
    :param short_empty_elements: Write empty elements as ``<foo/>`` instead
        of ``<foo></foo>``.
    :type short_empty_elements: :class:`bool`
    :param sorted_attributes: Sort the attributes in the output.
    :type sorted_attributes: :class:`bool`
    :param auto_declare: Declare namespaces of elements and attributes which
        are not in scope.
    :type auto_declare: :class:`bool`

    Namespaces are given as :class:`~xbind.structs.Namespace` objects. The
    alias of a namespace is used as prefix verbatim, there is no automatic
    prefix selection. A namespace declaration is only written if the alias
    is not already bound to the same URI by an enclosing element.

    With `auto_declare` (the default), the writer additionally declares the
    namespace of an element or namespaced attribute on that element if its
    alias is not bound to the namespace URI yet. Without `auto_declare`, the
    writer trusts the caller: names are written as given and only the
    namespace declarations passed explicitly are emitted. This mode is used
    to capture fragments of documents whose enclosing namespace context is
    tracked elsewhere.

    If `sorted_attributes` is true, attributes are emitted in the lexical
    order of their qualified names. Namespace declarations are always emitted
    before the attributes, in the order they were passed.

    .. automethod:: startDocument

    .. automethod:: startElement

    .. automethod:: simpleElement

    .. automethod:: characters

    .. automethod:: innerXml

    .. automethod:: writeUnescaped

    .. automethod:: startRepeatingElement

    .. automethod:: endRepeatingElement

    .. automethod:: endElement

    .. automethod:: endDocument

    .. automethod:: flush

    .. automethod:: lookup_namespace
    """

    def __init__(self, out,
                 short_empty_elements=True,
                 sorted_attributes=False,
                 auto_declare=True):
        self._write = out.write
        if hasattr(out, "flush"):
            self._flush = out.flush
        else:
            self._flush = None

        self._short_empty_elements = short_empty_elements
        self._sorted_attributes = sorted_attributes
        self._auto_declare = auto_declare

        self._scope_stack = [{"xml": namespaces.xml}]
        self._element_stack = []
        self._repeating_stack = []
        self._pending_start_element = False

    @property
    def depth(self):
        """
        Number of currently open elements.
        """
        return len(self._element_stack)

    def lookup_namespace(self, alias):
        """
        Return the URI `alias` is bound to at the current position, or
        :data:`None`.
        """
        return self._scope_stack[-1].get(alias)

    def _finish_pending_start_element(self):
        if not self._pending_start_element:
            return
        self._pending_start_element = False
        self._write(">")

    def _declare(self, scope, pending, alias, uri):
        uri = uri or ""
        if alias in pending:
            if pending[alias] != uri:
                raise ValueError(
                    "prefix {!r} already declared for next element".format(
                        alias
                    )
                )
            return
        if (scope.get(alias) or "") == uri and self._auto_declare:
            return
        if alias is not None and not uri:
            raise ValueError("cannot undeclare prefix {!r}".format(alias))
        if alias == "xml":
            if uri != namespaces.xml:
                raise ValueError("the xml prefix cannot be rebound")
            return
        scope[alias] = uri
        pending[alias] = uri

    def _qname(self, scope, pending, namespace, name, attr=False):
        if ":" in name or not xmlValidateNameValue_str(name):
            raise ValueError("invalid name: {!r}".format(name))

        if namespace is None or not namespace.uri:
            if (not attr and self._auto_declare and
                    scope.get(None) and None not in pending):
                self._declare(scope, pending, None, "")
            return name

        if attr and namespace.alias is None:
            raise ValueError(
                "attribute {!r} cannot use the default namespace".format(name)
            )

        if self._auto_declare and scope.get(namespace.alias) != namespace.uri:
            self._declare(scope, pending, namespace.alias, namespace.uri)

        return namespace.qualify(name)

    def startDocument(self):
        """
        Start the document by writing the XML declaration.
        """
        self._write('<?xml version="1.0" encoding="utf-8"?>')

    def startElement(self, namespace, name, attrs=None, ns_decls=None):
        """
        Start a sub-element.

        :param namespace: Namespace of the element, or :data:`None`.
        :type namespace: :class:`~xbind.structs.Namespace`
        :param name: Local name of the element.
        :param attrs: Attributes as mapping or iterable of pairs. Keys are
            attribute names or tuples of a
            :class:`~xbind.structs.Namespace` and a local name. Pairs whose
            value is :data:`None` are skipped.
        :param ns_decls: Namespaces to declare on this element.
        :type ns_decls: iterable of :class:`~xbind.structs.Namespace`

        Attribute values are of course automatically escaped.
        """
        self._finish_pending_start_element()

        scope = dict(self._scope_stack[-1])
        pending = {}
        for decl in ns_decls or ():
            self._declare(scope, pending, decl.alias, decl.uri)

        qname = self._qname(scope, pending, namespace, name)

        if attrs is None:
            attrs = ()
        elif hasattr(attrs, "items"):
            attrs = attrs.items()

        attrib = []
        for key, value in attrs:
            if value is None:
                continue
            if isinstance(key, tuple):
                attr_ns, attr_name = key
                attrqname = self._qname(scope, pending, attr_ns, attr_name,
                                        attr=True)
            elif self._auto_declare:
                attrqname = self._qname(scope, pending, None, key, attr=True)
            else:
                attrqname = key
            if attrqname == "xmlns" or attrqname.startswith("xmlns:"):
                raise ValueError("xmlns not allowed as attribute name")
            attrib.append((attrqname, value))

        self._write("<")
        self._write(qname)

        for alias, uri in pending.items():
            self._write(" xmlns")
            if alias:
                self._write(":")
                self._write(alias)
            self._write("=")
            self._write(xml.sax.saxutils.quoteattr(uri))

        if self._sorted_attributes:
            attrib.sort()

        for attrname, value in attrib:
            self._write(" ")
            self._write(attrname)
            self._write("=")
            self._write(xml.sax.saxutils.quoteattr(value))

        self._scope_stack.append(scope)
        self._element_stack.append(qname)

        if self._short_empty_elements:
            self._pending_start_element = True
        else:
            self._write(">")

    def endElement(self):
        """
        End the most recently started element.
        """
        if not self._element_stack:
            raise RuntimeError("no open element")
        if (self._repeating_stack and
                self._repeating_stack[-1] == len(self._element_stack)):
            raise RuntimeError("repeating element group has not been closed")

        qname = self._element_stack.pop()
        self._scope_stack.pop()
        if self._pending_start_element:
            self._pending_start_element = False
            self._write("/>")
        else:
            self._write("</")
            self._write(qname)
            self._write(">")

    def simpleElement(self, namespace, name, attrs=None, value=None):
        """
        Write an element with the given attributes and, if `value` is not
        :data:`None`, text content.
        """
        self.startElement(namespace, name, attrs)
        if value is not None:
            self.characters(value)
        self.endElement()

    def startRepeatingElement(self):
        """
        Mark the start of a group of sibling elements of the same kind. Groups
        must be closed with :meth:`endRepeatingElement` before the enclosing
        element is ended. Groups do not change the output of this writer.
        """
        self._repeating_stack.append(len(self._element_stack))

    def endRepeatingElement(self):
        """
        Mark the end of a group started with :meth:`startRepeatingElement`.
        """
        if (not self._repeating_stack or
                self._repeating_stack[-1] != len(self._element_stack)):
            raise RuntimeError("no repeating element group at this level")
        self._repeating_stack.pop()

    def characters(self, chars):
        """
        Put character data in the currently open element. Special characters
        (such as ``<``, ``>`` and ``&``) are escaped.

        If `chars` contains any ASCII control character, :class:`ValueError`
        is raised.
        """
        self._finish_pending_start_element()
        if not is_valid_cdata_str(chars):
            raise ValueError("control characters are not allowed in "
                             "well-formed XML")
        self._write(xml.sax.saxutils.escape(chars))

    def writeUnescaped(self, text):
        """
        Write `text` without any escaping.
        """
        self._finish_pending_start_element()
        self._write(text)

    def innerXml(self, text):
        """
        Write the serialized XML `text` (for example the raw XML of a
        :class:`~xbind.fragment.Fragment`) at the current position. Empty or
        :data:`None` `text` writes nothing.
        """
        if text:
            self.writeUnescaped(text)

    def endDocument(self):
        """
        This must be called at the end of the document. Note that this does
        not call :meth:`flush`.
        """
        if self._element_stack:
            raise RuntimeError("document ended with open elements")

    def flush(self):
        """
        Finish any unfinished opening tag and call :meth:`flush` on the
        object passed to the `out` argument of the constructor.
        """
        self._finish_pending_start_element()
        if self._flush:
            self._flush()


def make_parser():
    """
    Create a SAX parser which is suitably configured for the
    :class:`~xbind.parser.XMLParser` content handler: namespace processing
    is enabled and external general entities are not resolved.
    """
    p = xml.sax.make_parser()
    p.setFeature(xml.sax.handler.feature_namespaces, True)
    p.setFeature(xml.sax.handler.feature_external_ges, False)
    return p


def serialize(x, profile, *, xml_declaration=False, sorted_attributes=False):
    """
    Serialize the extension point `x` as document root and return the XML as
    :class:`str`.
    """
    buf = io.StringIO()
    write_document(x, buf, profile,
                   xml_declaration=xml_declaration,
                   sorted_attributes=sorted_attributes)
    return buf.getvalue()


def write_document(x, dest, profile, *, xml_declaration=True,
                   sorted_attributes=False):
    """
    Write the extension point `x` as document root to the text file-like
    object `dest`.
    """
    gen = XMLWriter(dest,
                    short_empty_elements=True,
                    sorted_attributes=sorted_attributes)
    if xml_declaration:
        gen.startDocument()
    x.generate_root(gen, profile)
    gen.endDocument()
    gen.flush()


def read_document(src, x, profile):
    """
    Parse the XML document from the binary file-like `src` into the
    extension point `x` and return `x`.
    """
    x.parse(profile, stream=src)
    return x
