########################################################################
# File name: config.py
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
:mod:`~xbind.ext.config` --- Profile configuration documents
############################################################

Declarations can be read from and written to XML documents, which allows
to configure a profile without code::

  <extensionProfile xmlns="urn:xbind:config" arbitraryXml="true">
    <namespaceDescription alias="gd" uri="urn:example:gd"/>
    <extensionPoint extendedClass="Entry" arbitraryXml="false">
      <extensionDescription namespace="gd" localName="email"
          extensionClass="Email" required="false" repeatable="true"/>
    </extensionPoint>
  </extensionProfile>

Classes are referred to by name. The names are resolved through a mapping
passed by the caller; no classes are imported dynamically.

The ``namespace`` attribute of ``extensionDescription`` refers to a
``namespaceDescription`` given before, either by alias or by URI.

.. autofunction:: parse_config

.. autofunction:: generate_config

.. data:: CONFIG_NAMESPACE

   The :class:`~xbind.structs.Namespace` of the configuration format.
"""
import logging

from .. import errors, structs
from ..attrs import AttributeGenerator, AttributeHelper
from ..parser import ElementHandler, XMLParser
from ..utils import namespaces
from .profile import ExtensionDescription


logger = logging.getLogger(__name__)

CONFIG_NAMESPACE = structs.Namespace(None, namespaces.xbind_config)


class _Context:
    def __init__(self, profile, type_map):
        super().__init__()
        self.profile = profile
        self.type_map = type_map
        self.namespaces = []

    def resolve_type(self, name):
        try:
            return self.type_map[name]
        except KeyError:
            raise errors.ExtensionError(
                errors.ErrorCondition.UNKNOWN_EXTENSION_TYPE,
                "Unable to load extension class: {}".format(name),
            ) from None

    def find_namespace(self, value):
        for namespace in self.namespaces:
            if value == namespace.alias or value == namespace.uri:
                return namespace
        raise errors.ExtensionError(
            errors.ErrorCondition.MISSING_NAMESPACE_DESCRIPTION,
            "No matching namespace description for {}".format(value),
        )


class _ConfigElementHandler(ElementHandler):
    CHILDREN = {}

    def __init__(self, context):
        super().__init__()
        self.context = context
        self.attributes = AttributeHelper()

    def process_attribute(self, namespace_uri, localname, value):
        self.attributes.add(namespace_uri, localname, value)

    def get_child_handler(self, namespace_uri, localname, attrs):
        if namespace_uri == CONFIG_NAMESPACE.uri:
            try:
                handler_class = self.CHILDREN[localname]
            except KeyError:
                pass
            else:
                return handler_class(self.context)
        return super().get_child_handler(namespace_uri, localname, attrs)

    def apply(self, attributes):
        pass

    def process_end_element(self):
        super().process_end_element()
        self.apply(self.attributes)
        self.attributes.assert_all_consumed()


class _DescriptionHandler(_ConfigElementHandler):
    def apply(self, attributes):
        context = self.context
        namespace = context.find_namespace(
            attributes.consume("namespace", True)
        )
        local_name = attributes.consume("localName", True)
        type_ = context.resolve_type(
            attributes.consume("extensionClass", True)
        )
        self.parent.descriptions.append(ExtensionDescription(
            type_,
            namespace,
            local_name,
            required=attributes.consume_boolean("required"),
            repeatable=attributes.consume_boolean("repeatable"),
            aggregate=attributes.consume_boolean("aggregate"),
            arbitrary_xml=attributes.consume_boolean("arbitraryXml"),
            mixed_content=attributes.consume_boolean("mixedContent"),
        ))


class _ExtensionPointHandler(_ConfigElementHandler):
    CHILDREN = {
        "extensionDescription": _DescriptionHandler,
    }

    def __init__(self, context):
        super().__init__(context)
        self.descriptions = []

    def apply(self, attributes):
        profile = self.context.profile
        owner_type = self.context.resolve_type(
            attributes.consume("extendedClass", True)
        )
        if attributes.consume_boolean("arbitraryXml"):
            profile.declare_arbitrary_xml(owner_type)
        for description in self.descriptions:
            profile.declare(owner_type, description)


class _NamespaceDescriptionHandler(_ConfigElementHandler):
    def apply(self, attributes):
        namespace = structs.Namespace(
            attributes.consume("alias", True),
            attributes.consume("uri", True),
        )
        self.context.namespaces.append(namespace)
        self.context.profile.declare_additional_namespace(namespace)


class _ProfileHandler(_ConfigElementHandler):
    CHILDREN = {
        "namespaceDescription": _NamespaceDescriptionHandler,
        "extensionPoint": _ExtensionPointHandler,
    }

    def apply(self, attributes):
        allows_arbitrary_xml = attributes.consume_boolean(
            "arbitraryXml",
            default=None,
        )
        if allows_arbitrary_xml is not None:
            self.context.profile.allows_arbitrary_xml = allows_arbitrary_xml


def parse_config(profile, type_map, *, text=None, stream=None, events=None):
    """
    Read a configuration document and apply its declarations to `profile`.

    :param profile: The profile to configure.
    :type profile: :class:`~.ExtensionProfile`
    :param type_map: Mapping of the class names used in the document to the
        classes.
    :raises xbind.errors.ParseError: with
        :attr:`~.ErrorCondition.UNKNOWN_EXTENSION_TYPE` for class names not
        in `type_map`, :attr:`~.ErrorCondition.MISSING_ATTRIBUTE` for missing
        attributes or :attr:`~.ErrorCondition.MISSING_NAMESPACE_DESCRIPTION`
        if an extension description refers to an undescribed namespace.

    The document source is given as for
    :meth:`~xbind.parser.XMLParser.parse`.
    """
    XMLParser().parse(
        _ProfileHandler(_Context(profile, type_map)),
        CONFIG_NAMESPACE.uri,
        "extensionProfile",
        text=text,
        stream=stream,
        events=events,
    )


def _default_type_name(type_):
    return "{}.{}".format(type_.__module__, type_.__qualname__)


def generate_config(profile, writer, type_names=None):
    """
    Write the declarations of `profile` as configuration document to the
    :class:`~xbind.xml.XMLWriter` `writer`.

    :param type_names: Mapping of classes to the names to write. Classes not
        in the mapping are written with their qualified python name.

    All namespaces in use are written as namespace descriptions. Extension
    points are written in the order of their names, and their extension
    descriptions in the order of namespace URI and local name. Extensions
    of elements without namespace cannot be expressed in the format and are
    skipped.
    """
    type_names = type_names or {}

    def name_of(type_):
        return type_names.get(type_) or _default_type_name(type_)

    gen = AttributeGenerator()
    gen.put("arbitraryXml", bool(profile.allows_arbitrary_xml))
    writer.startElement(CONFIG_NAMESPACE, "extensionProfile", gen.emitted())

    for namespace in profile.get_namespace_decls():
        writer.simpleElement(
            CONFIG_NAMESPACE,
            "namespaceDescription",
            [("alias", namespace.alias or ""), ("uri", namespace.uri)],
        )

    manifests = sorted(
        ((name_of(owner_type), manifest)
         for owner_type, manifest in profile.manifests()),
        key=lambda item: item[0],
    )
    for name, manifest in manifests:
        gen = AttributeGenerator()
        gen.put("extendedClass", name)
        gen.put("arbitraryXml", manifest.arbitrary_xml)
        writer.startElement(CONFIG_NAMESPACE, "extensionPoint",
                            gen.emitted())

        for description in sorted(manifest.supported.values()):
            if not description.namespace.uri:
                logger.debug("cannot express %r in configuration",
                             description)
                continue
            gen = AttributeGenerator()
            gen.put("namespace", description.namespace.uri)
            gen.put("localName", description.local_name)
            gen.put("extensionClass", name_of(description.type_))
            gen.put("required", description.required)
            gen.put("repeatable", description.repeatable)
            gen.put("aggregate", description.aggregate)
            gen.put("arbitraryXml", description.arbitrary_xml)
            gen.put("mixedContent", description.mixed_content)
            writer.simpleElement(CONFIG_NAMESPACE, "extensionDescription",
                                 gen.emitted())

        writer.endElement()

    writer.endElement()
