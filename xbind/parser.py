########################################################################
# File name: parser.py
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
:mod:`~xbind.parser` --- Single-pass document parser
####################################################

The :class:`XMLParser` is a SAX content handler which routes the events of
one document to a stack of :class:`ElementHandler` objects. Each handler is
responsible for exactly one element. For every child element, the current
handler is asked for a handler of the child (see
:meth:`ElementHandler.get_child_handler`). If it does not provide one, the
child and all of its descendants are written verbatim to the
:class:`~xbind.fragment.Fragment` of the current handler, if it has one;
otherwise, parsing fails.

The ``xml:lang`` and ``xml:base`` attributes are handled by the parser and
propagate from parents to children.

.. autoclass:: XMLParser

.. autoclass:: ElementHandler

.. autoclass:: ElementState

"""
import contextlib
import io
import itertools
import logging

import xml.sax
import xml.sax.handler

import lxml.sax

from enum import Enum

from . import errors, structs
from .fragment import FragmentCapture
from .utils import namespaces, resolve_xml_base, tag_to_str
from .xml import make_parser


logger = logging.getLogger(__name__)


class ElementState(Enum):
    """
    The states an element passes through while it is being parsed.

    .. attribute:: DISPATCH

       A handler has been chosen for the element.

    .. attribute:: ATTRIBUTES_APPLIED

       ``xml:lang``, ``xml:base`` and the other attributes have been handed
       to the handler.

    .. attribute:: CHILDREN

       Child elements and text are being processed.

    .. attribute:: VALIDATED

       The end of the element has been processed by the handler.

    .. attribute:: CLOSED

       The handler has been removed from the stack.
    """

    DISPATCH = 0
    ATTRIBUTES_APPLIED = 1
    CHILDREN = 2
    VALIDATED = 3
    CLOSED = 4


class ElementHandler:
    """
    Base class for the handler of a single element.

    .. attribute:: namespace_uri

       Namespace URI of the element, or :data:`None`.

    .. attribute:: localname

       Local name of the element.

    .. attribute:: qname

       Qualified name of the element, as far as it can be determined from
       the namespace declarations in scope.

    .. attribute:: value

       The text content of the element, or :data:`None` if the element did
       not contain any text. Only valid in :meth:`process_end_element`.

    .. attribute:: lang

       The ``xml:lang`` in effect for the element, or :data:`None`.

    .. attribute:: base

       The ``xml:base`` in effect for the element, or :data:`None`.

    .. attribute:: own_lang

       The ``xml:lang`` given on the element itself, or :data:`None`.

    .. attribute:: own_base

       The ``xml:base`` given on the element itself, resolved against the
       inherited base, or :data:`None`.

    .. attribute:: parent

       The handler of the parent element, or :data:`None` for the root.

    .. attribute:: state

       The :class:`ElementState` of the element.

    .. attribute:: capture

       The :class:`~xbind.fragment.FragmentCapture` receiving unrecognized
       child elements, or :data:`None`. See :meth:`init_fragment`.

    Subclasses override the following methods:

    .. automethod:: get_child_handler

    .. automethod:: process_attribute

    .. automethod:: process_end_element

    Utilities:

    .. automethod:: init_fragment

    .. automethod:: get_absolute_uri
    """

    def __init__(self):
        super().__init__()
        self.namespace_uri = None
        self.localname = None
        self.qname = None
        self.value = None
        self.lang = None
        self.base = None
        self.own_lang = None
        self.own_base = None
        self.parent = None
        self.state = ElementState.DISPATCH
        self.capture = None
        self._text = None

    @property
    def mixed_content(self):
        return self.capture is not None and self.capture.mixed_content

    def init_fragment(self, fragment, mixed_content=False,
                      full_text_index=False):
        """
        Keep unrecognized child elements of this element in `fragment`.

        If `mixed_content` is true, text directly inside the element is
        kept in the fragment as well (and is allowed at all).
        """
        if self.capture is not None:
            raise RuntimeError("fragment has already been initialised")
        self.capture = FragmentCapture(fragment,
                                       mixed_content=mixed_content,
                                       full_text_index=full_text_index)

    def get_child_handler(self, namespace_uri, localname, attrs):
        """
        Return the handler for a child element, or :data:`None` to keep the
        child as unrecognized XML.

        :param namespace_uri: Namespace URI of the child, or :data:`None`.
        :param localname: Local name of the child.
        :param attrs: The attributes of the child.
        :type attrs: :class:`dict` mapping ``(namespace_uri, localname)``
            tuples to values

        The default implementation returns :data:`None` if the handler has a
        fragment and raises :class:`~.errors.ExtensionError` with
        :attr:`~.ErrorCondition.UNRECOGNIZED_ELEMENT` otherwise.
        """
        if self.capture is not None:
            return None
        raise errors.ExtensionError(
            errors.ErrorCondition.UNRECOGNIZED_ELEMENT,
            "Unrecognized element {}".format(
                tag_to_str((namespace_uri, localname))
            ),
        )

    def process_attribute(self, namespace_uri, localname, value):
        """
        Process one attribute of the element. ``xml:lang`` and ``xml:base``
        are not passed to this method.

        A :class:`ValueError` raised from here is reported as
        :attr:`~.ErrorCondition.INVALID_ATTRIBUTE_VALUE`.

        The default implementation ignores the attribute.
        """

    def process_end_element(self):
        """
        Process the end of the element; :attr:`value` holds the text
        content.

        The default implementation rejects non-whitespace text unless the
        element has mixed content.
        """
        if (self.value is not None and self.value.strip() and
                not self.mixed_content):
            raise errors.ExtensionError(
                errors.ErrorCondition.TEXT_NOT_ALLOWED,
                "Unexpected text content",
            )

    def get_absolute_uri(self, uri):
        """
        Resolve `uri` against the ``xml:base`` in effect.
        """
        if self.base is None:
            return uri
        return resolve_xml_base(self.base, uri)


class _NamespaceDecl:
    __slots__ = ("namespace", "in_fragment", "serial")

    def __init__(self, namespace, serial):
        self.namespace = namespace
        self.in_fragment = False
        self.serial = serial


class XMLParser(xml.sax.handler.ContentHandler):
    """
    SAX content handler which drives a tree of :class:`ElementHandler`
    objects.

    One instance parses one document at a time with :meth:`parse`. For
    driving the parser with SAX events directly, arm it with :meth:`prepare`
    and call the content handler methods.

    All errors are raised as :class:`~.errors.ParseError` and carry the line
    and column (if the event source reports them) and the qualified name of
    the innermost open element.

    .. automethod:: parse

    .. automethod:: prepare
    """

    def __init__(self):
        super().__init__()
        self._locator = None
        self._serial = itertools.count()
        self._reset(None, None)

    def _reset(self, root_handler, root_tag):
        self._root_handler = root_handler
        self._root_tag = root_tag
        self._handler = None
        self._root_seen = False
        self._buffering_depth = 0
        self._ns_stacks = {}
        self._pending_decls = []
        self._open_elements = []

    def prepare(self, root_handler, root_namespace=None, root_name=None):
        """
        Arm the parser for a new document whose root element is processed by
        `root_handler`. If `root_name` is not :data:`None`, the root element
        must be `root_name` in `root_namespace`.
        """
        if root_name is not None:
            root_tag = (root_namespace or None, root_name)
        else:
            root_tag = None
        self._reset(root_handler, root_tag)

    def parse(self, root_handler, root_namespace=None, root_name=None, *,
              text=None, stream=None, events=None):
        """
        Parse a document.

        :param root_handler: Handler for the root element.
        :type root_handler: :class:`ElementHandler`
        :param root_namespace: Expected namespace URI of the root element.
        :param root_name: Expected local name of the root element, or
            :data:`None` to accept any root element.
        :param text: The document as :class:`str` or text file-like object.
        :param stream: The document as binary file-like object.
        :param events: Event source: either a callable which is called with
            this content handler and emits the SAX events of the document, or
            an :mod:`lxml` element or element tree.
        :raises TypeError: if not exactly one of `text`, `stream` and
            `events` is given.
        :raises xbind.errors.ParseError: if parsing fails.
        """
        given = [source for source in (text, stream, events)
                 if source is not None]
        if len(given) != 1:
            raise TypeError(
                "exactly one of text, stream and events must be given"
            )

        self.prepare(root_handler, root_namespace, root_name)

        if events is not None:
            self._locator = None
            if callable(events):
                events(self)
            else:
                lxml.sax.saxify(events, self)
            return

        if isinstance(text, str):
            text = io.StringIO(text)

        parser = make_parser()
        parser.setContentHandler(self)
        try:
            parser.parse(text if text is not None else stream)
        except xml.sax.SAXParseException as exc:
            raise errors.ParseError(
                errors.ErrorCondition.MALFORMED_XML,
                exc.getMessage(),
                line=exc.getLineNumber(),
                column=exc.getColumnNumber(),
                element=self._current_element(),
            ) from exc
        finally:
            self._locator = None

    def _current_element(self):
        if self._open_elements:
            return self._open_elements[-1]
        return None

    def _locate(self, exc):
        line = column = None
        if self._locator is not None:
            line = self._locator.getLineNumber()
            column = self._locator.getColumnNumber()
        return errors.ParseError.from_error(
            exc,
            line=line,
            column=column,
            element=self._current_element(),
        )

    @contextlib.contextmanager
    def _error_location(self):
        try:
            yield
        except errors.ParseError:
            raise
        except errors.ExtensionError as exc:
            raise self._locate(exc) from exc

    def _find_decl(self, namespace_uri, qname=None, attr=False):
        # returns the declaration in scope which binds a prefix to
        # namespace_uri, preferring the prefix used in qname if known
        uri = namespace_uri or ""
        if qname:
            prefix, sep, _ = qname.rpartition(":")
            alias = prefix if sep else None
            stack = self._ns_stacks.get(alias)
            if (stack and stack[-1].namespace.uri == uri and
                    not (attr and alias is None)):
                return stack[-1]

        if not uri:
            if attr:
                return None
            stack = self._ns_stacks.get(None)
            return stack[-1] if stack else None

        best = None
        for alias, stack in self._ns_stacks.items():
            if attr and alias is None:
                continue
            decl = stack[-1]
            if decl.namespace.uri != uri:
                continue
            if best is None or decl.serial > best.serial:
                best = decl
        return best

    def _qualify(self, namespace_uri, localname, qname=None, attr=False):
        if namespace_uri == namespaces.xml:
            return "xml:" + localname
        decl = self._find_decl(namespace_uri, qname, attr=attr)
        if decl is None:
            if namespace_uri:
                return tag_to_str((namespace_uri, localname))
            return localname
        return decl.namespace.qualify(localname)

    def setDocumentLocator(self, locator):
        self._locator = locator

    def startDocument(self):
        pass

    def endDocument(self):
        if self._handler is not None:
            raise self._locate(errors.ExtensionError(
                errors.ErrorCondition.MALFORMED_XML,
                "document ended with open elements",
            ))

    def startPrefixMapping(self, prefix, uri):
        decl = _NamespaceDecl(
            structs.Namespace(prefix or None, uri or ""),
            next(self._serial),
        )
        self._ns_stacks.setdefault(decl.namespace.alias, []).append(decl)
        self._pending_decls.append(decl)

    def endPrefixMapping(self, prefix):
        alias = prefix or None
        stack = self._ns_stacks[alias]
        stack.pop()
        if not stack:
            del self._ns_stacks[alias]

    def startElement(self, name, attrs):
        raise RuntimeError("incorrectly configured parser: "
                           "startElement called (instead of startElementNS)")

    def endElement(self, name):
        raise RuntimeError("incorrectly configured parser: "
                           "endElement called (instead of endElementNS)")

    def startElementNS(self, name, qname, attrs):
        namespace_uri, localname = name
        namespace_uri = namespace_uri or None
        decls, self._pending_decls = self._pending_decls, []
        attr_qnames = getattr(attrs, "getQNameByName", None)
        attr_map = {
            (attr_uri or None, attr_name): value
            for (attr_uri, attr_name), value in attrs.items()
        }

        if (self._handler is not None and
                self._handler.state == ElementState.ATTRIBUTES_APPLIED):
            self._handler.state = ElementState.CHILDREN

        self._open_elements.append(
            self._qualify(namespace_uri, localname, qname)
        )

        with self._error_location():
            if self._buffering_depth > 0:
                self._buffer_start(namespace_uri, localname, qname,
                                   attrs, attr_qnames, decls)
                return

            if self._handler is None:
                handler = self._dispatch_root(namespace_uri, localname)
            else:
                handler = self._handler.get_child_handler(
                    namespace_uri,
                    localname,
                    attr_map,
                )

            if handler is None:
                if self._handler.capture is None:
                    raise errors.ExtensionError(
                        errors.ErrorCondition.UNRECOGNIZED_ELEMENT,
                        "Unrecognized element {}".format(
                            tag_to_str((namespace_uri, localname))
                        ),
                    )
                logger.debug("no handler for %s, keeping it as "
                             "unrecognized XML",
                             tag_to_str((namespace_uri, localname)))
                self._buffer_start(namespace_uri, localname, qname,
                                   attrs, attr_qnames, decls)
                return

            self._push_handler(handler, namespace_uri, localname, attr_map)

    def _dispatch_root(self, namespace_uri, localname):
        if self._root_handler is None:
            raise RuntimeError("parser has not been prepared")
        if self._root_seen:
            raise errors.ExtensionError(
                errors.ErrorCondition.MALFORMED_XML,
                "more than one root element",
            )
        self._root_seen = True
        if (self._root_tag is not None and
                self._root_tag != (namespace_uri, localname)):
            raise errors.ExtensionError(
                errors.ErrorCondition.INVALID_ROOT_ELEMENT,
                "Invalid root element, expected {}, found {}".format(
                    tag_to_str(self._root_tag),
                    tag_to_str((namespace_uri, localname)),
                ),
            )
        return self._root_handler

    def _push_handler(self, handler, namespace_uri, localname, attr_map):
        parent = self._handler
        handler.namespace_uri = namespace_uri
        handler.localname = localname
        handler.parent = parent
        handler.qname = self._open_elements[-1]
        if parent is not None:
            handler.lang = parent.lang
            handler.base = parent.base
        handler.own_lang = None
        handler.own_base = None
        handler.state = ElementState.DISPATCH
        self._handler = handler

        logger.debug("start %s with %r", handler.qname, handler)

        # context first, so that process_attribute sees it
        lang = attr_map.get((namespaces.xml, "lang"))
        if lang is not None:
            handler.lang = lang
            handler.own_lang = lang
        base = attr_map.get((namespaces.xml, "base"))
        if base is not None:
            handler.base = resolve_xml_base(handler.base, base)
            handler.own_base = handler.base

        if handler.capture is not None:
            fragment = handler.capture.fragment
            if handler.own_lang is not None:
                fragment.lang = handler.own_lang
            if handler.own_base is not None:
                fragment.base = handler.own_base

        for (attr_uri, attr_name), value in attr_map.items():
            if (attr_uri == namespaces.xml and
                    attr_name in ("lang", "base")):
                continue
            try:
                handler.process_attribute(attr_uri, attr_name, value)
            except errors.ExtensionError:
                raise
            except ValueError as exc:
                raise errors.ExtensionError(
                    errors.ErrorCondition.INVALID_ATTRIBUTE_VALUE,
                    "Invalid value for attribute {}: {}".format(
                        tag_to_str((attr_uri, attr_name)),
                        exc,
                    ),
                ) from exc

        handler.state = ElementState.ATTRIBUTES_APPLIED

    def _require_namespace(self, capture, decl, namespace_uri, local_decls):
        if decl is None:
            if namespace_uri:
                raise errors.ExtensionError(
                    errors.ErrorCondition.UNDECLARED_NAMESPACE,
                    "no prefix is bound to {!r}".format(namespace_uri),
                )
            return
        if decl.in_fragment:
            return
        if (not capture.require_namespace(decl.namespace) and
                decl.namespace not in local_decls):
            # the fragment binds the alias differently
            local_decls.append(decl.namespace)

    def _buffer_start(self, namespace_uri, localname, qname,
                      attrs, attr_qnames, decls):
        capture = self._handler.capture
        self._buffering_depth += 1
        local_decls = []

        for decl in decls:
            decl.in_fragment = True

        if namespace_uri == namespaces.xml:
            element_ns = structs.Namespace("xml", namespaces.xml)
        else:
            decl = self._find_decl(namespace_uri, qname)
            self._require_namespace(capture, decl, namespace_uri,
                                    local_decls)
            if decl is not None:
                element_ns = decl.namespace
            else:
                element_ns = None

        attr_list = []
        for (attr_uri, attr_name), value in attrs.items():
            if not attr_uri:
                attr_list.append((attr_name, value))
                continue
            if attr_uri == namespaces.xml:
                attr_list.append(("xml:" + attr_name, value))
                continue
            attr_qname = None
            if attr_qnames is not None:
                try:
                    attr_qname = attr_qnames((attr_uri, attr_name))
                except KeyError:
                    pass
            decl = self._find_decl(attr_uri, attr_qname, attr=True)
            self._require_namespace(capture, decl, attr_uri, local_decls)
            attr_list.append((decl.namespace.qualify(attr_name), value))

        capture.start_element(
            element_ns,
            localname,
            attr_list,
            [decl.namespace for decl in decls] + local_decls,
        )

    def endElementNS(self, name, qname):
        with self._error_location():
            if self._buffering_depth > 0:
                self._buffering_depth -= 1
                self._handler.capture.end_element()
                self._open_elements.pop()
                return

            handler = self._handler
            if handler.capture is not None:
                handler.capture.finish()
            if handler._text is not None:
                handler.value = "".join(handler._text)
                handler._text = None

            handler.process_end_element()
            handler.state = ElementState.VALIDATED

            self._handler = handler.parent
            self._open_elements.pop()
            handler.state = ElementState.CLOSED
            logger.debug("end %s", handler.qname)

    def characters(self, content):
        handler = self._handler
        if handler is None:
            return

        if handler.state == ElementState.ATTRIBUTES_APPLIED:
            handler.state = ElementState.CHILDREN

        if self._buffering_depth == 0:
            if handler._text is None:
                handler._text = []
            handler._text.append(content)

        capture = handler.capture
        if capture is not None and (self._buffering_depth > 0 or
                                    capture.mixed_content):
            with self._error_location():
                capture.characters(content)

    def ignorableWhitespace(self, whitespace):
        self.characters(whitespace)

    def processingInstruction(self, target, data):
        logger.debug("ignoring processing instruction %r", target)
