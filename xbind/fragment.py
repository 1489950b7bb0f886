########################################################################
# File name: fragment.py
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
:mod:`~xbind.fragment` --- Verbatim storage of unrecognized XML
###############################################################

Elements which are not known to a container, but which the container is
allowed to keep, are stored as serialized XML in a :class:`Fragment`. The
fragment also records the namespace declarations from the enclosing
document the XML depends on, so that it can be written into any other
document and still mean the same thing.

.. autoclass:: Fragment

.. autoclass:: FragmentCapture

.. data:: FULL_TEXT_SEPARATOR

   Separator appended after each text segment in
   :attr:`Fragment.full_text`.

"""
import io

import sortedcollections

from .xml import XMLWriter, XML_NAMESPACE


FULL_TEXT_SEPARATOR = "\n"


class Fragment:
    """
    Unrecognized XML kept by an extension point.

    .. attribute:: raw_xml

       The serialized XML of all unrecognized child elements (and, for mixed
       content, the text between them), in document order.

    .. attribute:: namespaces

       :class:`sortedcollections.OrderedSet` of
       :class:`~xbind.structs.Namespace` objects. These are the declarations
       of the enclosing document the :attr:`raw_xml` relies on.

    .. attribute:: lang

       The ``xml:lang`` given on the owning element, or :data:`None`.

    .. attribute:: base

       The ``xml:base`` given on the owning element, or :data:`None`.

    .. attribute:: full_text

       Text content and attribute values of the unrecognized XML for
       indexing purposes, or :data:`None` if not collected.

    .. automethod:: start_element

    .. automethod:: end_element

    .. automethod:: to_standalone
    """

    __slots__ = ("raw_xml", "namespaces", "lang", "base", "full_text")

    def __init__(self, raw_xml="", namespaces=(), lang=None, base=None,
                 full_text=None):
        super().__init__()
        self.raw_xml = raw_xml
        self.namespaces = sortedcollections.OrderedSet(namespaces)
        self.lang = lang
        self.base = base
        self.full_text = full_text

    @property
    def is_empty(self):
        return not self.raw_xml

    def copy(self):
        return type(self)(
            raw_xml=self.raw_xml,
            namespaces=self.namespaces,
            lang=self.lang,
            base=self.base,
            full_text=self.full_text,
        )

    def clear(self):
        self.raw_xml = ""
        self.namespaces.clear()
        self.full_text = None

    def start_element(self, writer, namespace, name, attrs=(), ns_decls=()):
        """
        Start the element owning this fragment on the
        :class:`~xbind.xml.XMLWriter` `writer`.

        In addition to the attributes `attrs` and the namespace declarations
        `ns_decls`, the namespaces of the fragment are declared, and
        ``xml:lang`` and ``xml:base`` are written if set.
        """
        attrs = list(attrs)
        if self.lang is not None:
            attrs.append(((XML_NAMESPACE, "lang"), str(self.lang)))
        if self.base is not None:
            attrs.append(((XML_NAMESPACE, "base"), self.base))

        own = {ns.alias: ns.uri for ns in self.namespaces}
        decls = [ns for ns in ns_decls if own.get(ns.alias, ns.uri) == ns.uri]
        decls.extend(ns for ns in self.namespaces if ns not in decls)
        writer.startElement(namespace, name, attrs, decls)

    def end_element(self, writer):
        writer.endElement()

    def to_standalone(self, namespace=None, name="fragment"):
        """
        Return a complete XML document as :class:`str` whose root element
        (`name` in `namespace`) wraps the :attr:`raw_xml`.
        """
        buf = io.StringIO()
        writer = XMLWriter(buf)
        self.start_element(writer, namespace, name)
        writer.innerXml(self.raw_xml)
        self.end_element(writer)
        return buf.getvalue()

    def __repr__(self):
        return "<{}.{} raw_xml={!r} namespaces={!r}>".format(
            type(self).__module__,
            type(self).__qualname__,
            self.raw_xml,
            list(self.namespaces),
        )


class FragmentCapture:
    """
    Serialize unrecognized elements into a :class:`Fragment` while they are
    being parsed.

    :param fragment: The fragment to fill.
    :param mixed_content: Whether text directly inside the owning element
        is captured as well.
    :param full_text_index: Whether to collect the text and attribute values
        into :attr:`Fragment.full_text`.

    Output is appended to whatever :attr:`Fragment.raw_xml` holds when the
    capture is created; it is written back by :meth:`finish`.
    """

    def __init__(self, fragment, mixed_content=False, full_text_index=False):
        super().__init__()
        self.fragment = fragment
        self.mixed_content = mixed_content
        self._prefix = fragment.raw_xml or ""
        self._buf = io.StringIO()
        self._writer = XMLWriter(self._buf, auto_declare=False)
        if full_text_index:
            self._full_text = [fragment.full_text or ""]
        else:
            self._full_text = None

    def require_namespace(self, namespace):
        """
        Record that `namespace`, declared outside the fragment, is used
        inside. Each alias is recorded once.

        Return :data:`False` if the fragment already binds the alias of
        `namespace` to a different URI; the namespace then has to be
        declared on the captured element which uses it.
        """
        if namespace.alias == "xml":
            return True
        for existing in self.fragment.namespaces:
            if existing.alias == namespace.alias:
                return existing.uri == namespace.uri
        self.fragment.namespaces.add(namespace)
        return True

    def start_element(self, namespace, name, attrs, ns_decls):
        self._writer.startElement(namespace, name, attrs, ns_decls)
        if self._full_text is not None:
            for _, value in attrs:
                self._full_text.append(value)
                self._full_text.append(" ")

    def end_element(self):
        self._writer.endElement()

    def characters(self, text):
        self._writer.characters(text)
        if self._full_text is not None:
            self._full_text.append(text)
            self._full_text.append(FULL_TEXT_SEPARATOR)

    def finish(self):
        """
        Store the captured XML in the fragment.
        """
        self._writer.flush()
        captured = self._buf.getvalue()
        if captured:
            self.fragment.raw_xml = self._prefix + captured
        if self._full_text is not None:
            self.fragment.full_text = "".join(self._full_text)
