########################################################################
# File name: test_config.py
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
import io
import unittest

import xbind.errors as errors

from xbind.ext import (
    AbstractExtension,
    CONFIG_NAMESPACE,
    ExtensionDescription,
    ExtensionPoint,
    ExtensionProfile,
    generate_config,
    parse_config,
)
from xbind.structs import Namespace
from xbind.utils import namespaces
from xbind.xml import XMLWriter


ATOM = Namespace(None, "urn:example:atom")
GD = Namespace("gd", "urn:example:gd")


class Title(AbstractExtension):
    NAMESPACE = ATOM
    LOCAL_NAME = "title"

    def consume_attributes(self, helper):
        self.text = helper.consume_content()


class Email(AbstractExtension):
    NAMESPACE = GD
    LOCAL_NAME = "email"

    def consume_attributes(self, helper):
        self.address = helper.consume("address", True)


class Entry(ExtensionPoint):
    NAMESPACE = ATOM
    LOCAL_NAME = "entry"


TYPES = {
    "Entry": Entry,
    "Title": Title,
    "Email": Email,
}

TYPE_NAMES = {type_: name for name, type_ in TYPES.items()}


CONFIG = """\
<?xml version="1.0"?>
<extensionProfile xmlns="urn:xbind:config" arbitraryXml="false">
  <namespaceDescription alias="gd" uri="urn:example:gd"/>
  <namespaceDescription alias="" uri="urn:example:atom"/>
  <extensionPoint extendedClass="Entry" arbitraryXml="true">
    <extensionDescription namespace="gd" localName="email"
        extensionClass="Email" repeatable="true"/>
    <extensionDescription namespace="urn:example:atom" localName="title"
        extensionClass="Title" required="true"/>
  </extensionPoint>
</extensionProfile>
"""


def wrap(body):
    return (
        '<extensionProfile xmlns="urn:xbind:config">'
        '<namespaceDescription alias="gd" uri="urn:example:gd"/>'
        '{}'
        '</extensionProfile>'
    ).format(body)


class TestParseConfig(unittest.TestCase):
    def setUp(self):
        self.profile = ExtensionProfile()

    def tearDown(self):
        del self.profile

    def assertConfigError(self, condition, text):
        with self.assertRaises(errors.ParseError) as ctx:
            parse_config(self.profile, TYPES, text=text)
        self.assertEqual(condition, ctx.exception.condition)
        return ctx.exception

    def test_namespace(self):
        self.assertEqual(namespaces.xbind_config, CONFIG_NAMESPACE.uri)
        self.assertIsNone(CONFIG_NAMESPACE.alias)

    def test_declarations(self):
        parse_config(self.profile, TYPES, text=CONFIG)
        self.assertFalse(self.profile.allows_arbitrary_xml)

        manifest = self.profile.get_manifest(Entry)
        self.assertTrue(manifest.arbitrary_xml)

        email = self.profile.lookup(Entry, "urn:example:gd", "email")
        self.assertIs(Email, email.type_)
        self.assertEqual(GD, email.namespace)
        self.assertTrue(email.repeatable)
        self.assertFalse(email.required)

        title = self.profile.lookup(Entry, "urn:example:atom", "title")
        self.assertIs(Title, title.type_)
        self.assertEqual(ATOM, title.namespace)
        self.assertTrue(title.required)
        self.assertFalse(title.repeatable)

        self.assertSequenceEqual(
            [GD, ATOM],
            list(self.profile.get_namespace_decls()),
        )

    def test_configured_profile_parses_documents(self):
        parse_config(self.profile, TYPES, text=CONFIG)
        entry = Entry()
        entry.parse(
            self.profile,
            text='<entry xmlns="urn:example:atom" '
                 'xmlns:gd="urn:example:gd"><title>t</title>'
                 '<gd:email address="a@example.com"/>'
                 '<gd:email address="b@example.com"/></entry>',
        )
        self.assertEqual("t", entry.get_extension(Title).text)
        self.assertEqual(2, len(entry.get_repeating_extension(Email)))

    def test_profile_arbitrary_xml_flag_wins(self):
        parse_config(self.profile, TYPES, text=CONFIG)
        with self.assertRaises(errors.ParseError) as ctx:
            Entry().parse(
                self.profile,
                text='<entry xmlns="urn:example:atom"><title>t</title>'
                     '<unknown/></entry>',
            )
        self.assertEqual(
            errors.ErrorCondition.UNRECOGNIZED_ELEMENT,
            ctx.exception.condition,
        )

    def test_stream(self):
        parse_config(self.profile, TYPES,
                     stream=io.BytesIO(CONFIG.encode("utf-8")))
        self.assertIsNotNone(self.profile.get_manifest(Entry))

    def test_flags_default_to_false(self):
        parse_config(self.profile, TYPES, text=wrap(
            '<extensionPoint extendedClass="Entry">'
            '<extensionDescription namespace="gd" localName="email" '
            'extensionClass="Email"/>'
            '</extensionPoint>'
        ))
        self.assertTrue(self.profile.allows_arbitrary_xml)
        self.assertFalse(self.profile.get_manifest(Entry).arbitrary_xml)
        d = self.profile.lookup(Entry, "urn:example:gd", "email")
        self.assertEqual(
            ExtensionDescription(Email, GD, "email"),
            d,
        )

    def test_unknown_extension_class(self):
        exc = self.assertConfigError(
            errors.ErrorCondition.UNKNOWN_EXTENSION_TYPE,
            wrap('<extensionPoint extendedClass="Entry">'
                 '<extensionDescription namespace="gd" localName="email" '
                 'extensionClass="Nope"/>'
                 '</extensionPoint>'),
        )
        self.assertEqual("Unable to load extension class: Nope",
                         exc.internal_reason)
        self.assertEqual("extensionDescription", exc.element)

    def test_unknown_extended_class(self):
        self.assertConfigError(
            errors.ErrorCondition.UNKNOWN_EXTENSION_TYPE,
            wrap('<extensionPoint extendedClass="Nope"/>'),
        )

    def test_missing_namespace_description(self):
        self.assertConfigError(
            errors.ErrorCondition.MISSING_NAMESPACE_DESCRIPTION,
            wrap('<extensionPoint extendedClass="Entry">'
                 '<extensionDescription namespace="atom" localName="title" '
                 'extensionClass="Title"/>'
                 '</extensionPoint>'),
        )

    def test_missing_attribute(self):
        self.assertConfigError(
            errors.ErrorCondition.MISSING_ATTRIBUTE,
            wrap('<extensionPoint extendedClass="Entry">'
                 '<extensionDescription namespace="gd" '
                 'extensionClass="Email"/>'
                 '</extensionPoint>'),
        )

    def test_unexpected_attribute(self):
        self.assertConfigError(
            errors.ErrorCondition.UNEXPECTED_ATTRIBUTE,
            wrap('<extensionPoint extendedClass="Entry" foo="bar"/>'),
        )

    def test_invalid_boolean(self):
        self.assertConfigError(
            errors.ErrorCondition.INVALID_ATTRIBUTE_VALUE,
            wrap('<extensionPoint extendedClass="Entry" '
                 'arbitraryXml="maybe"/>'),
        )

    def test_unknown_element(self):
        self.assertConfigError(
            errors.ErrorCondition.UNRECOGNIZED_ELEMENT,
            wrap('<somethingElse/>'),
        )

    def test_wrong_root(self):
        self.assertConfigError(
            errors.ErrorCondition.INVALID_ROOT_ELEMENT,
            '<extensionProfile/>',
        )


class TestGenerateConfig(unittest.TestCase):
    def setUp(self):
        self.profile = ExtensionProfile()
        self.profile.declare(Entry, Email)
        self.profile.declare(Entry, ExtensionDescription.for_type(
            Title,
            required=True,
        ))
        self.profile.declare_arbitrary_xml(Entry)

    def tearDown(self):
        del self.profile

    def generate(self, type_names=None):
        buf = io.StringIO()
        generate_config(self.profile, XMLWriter(buf), type_names)
        return buf.getvalue()

    def test_generate(self):
        self.assertEqual(
            '<extensionProfile xmlns="urn:xbind:config" '
            'arbitraryXml="true">'
            '<namespaceDescription alias="gd" uri="urn:example:gd"/>'
            '<namespaceDescription alias="" uri="urn:example:atom"/>'
            '<extensionPoint extendedClass="Entry" arbitraryXml="true">'
            '<extensionDescription namespace="urn:example:atom" '
            'localName="title" extensionClass="Title" required="true" '
            'repeatable="false" aggregate="false" arbitraryXml="false" '
            'mixedContent="false"/>'
            '<extensionDescription namespace="urn:example:gd" '
            'localName="email" extensionClass="Email" required="false" '
            'repeatable="false" aggregate="false" arbitraryXml="false" '
            'mixedContent="false"/>'
            '</extensionPoint>'
            '</extensionProfile>',
            self.generate(TYPE_NAMES),
        )

    def test_default_type_names(self):
        text = self.generate()
        self.assertIn(
            'extendedClass="{}.Entry"'.format(Entry.__module__),
            text,
        )
        self.assertIn(
            'extensionClass="{}.Email"'.format(Email.__module__),
            text,
        )

    def test_extension_points_in_name_order(self):
        class Another(ExtensionPoint):
            pass

        self.profile.declare(Another, Email)
        text = self.generate({Another: "Another", **TYPE_NAMES})
        self.assertLess(text.index('extendedClass="Another"'),
                        text.index('extendedClass="Entry"'))

    def test_skips_elements_without_namespace(self):
        class Plain(AbstractExtension):
            LOCAL_NAME = "plain"

        self.profile.declare(Entry, Plain)
        self.assertNotIn("plain", self.generate(TYPE_NAMES))

    def test_round_trip(self):
        text = self.generate(TYPE_NAMES)
        other = ExtensionProfile(arbitrary_xml=False)
        parse_config(other, TYPES, text=text)

        self.assertTrue(other.allows_arbitrary_xml)
        self.assertTrue(other.get_manifest(Entry).arbitrary_xml)
        self.assertEqual(
            dict(self.profile.get_manifest(Entry).supported),
            dict(other.get_manifest(Entry).supported),
        )
        self.assertEqual(
            set(self.profile.get_namespace_decls()),
            set(other.get_namespace_decls()),
        )
