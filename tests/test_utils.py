########################################################################
# File name: test_utils.py
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
import unittest

import xbind.errors as errors
import xbind.utils as utils


class TestNamespaces(unittest.TestCase):
    def setUp(self):
        self.namespaces = utils.Namespaces()

    def test_attribute_access(self):
        self.namespaces.foo = "urn:example:foo"
        self.assertEqual("urn:example:foo", self.namespaces.foo)

    def test_reject_duplicate_uri(self):
        self.namespaces.foo = "urn:example:foo"
        with self.assertRaisesRegex(ValueError, "already defined"):
            self.namespaces.bar = "urn:example:foo"

    def test_reject_redefinition(self):
        self.namespaces.foo = "urn:example:foo"
        with self.assertRaisesRegex(ValueError, "inconsistent"):
            self.namespaces.foo = "urn:example:bar"

    def test_allow_identical_redefinition(self):
        self.namespaces.foo = "urn:example:foo"
        self.namespaces.foo = "urn:example:foo"

    def test_reject_deletion(self):
        self.namespaces.foo = "urn:example:foo"
        with self.assertRaises(AttributeError):
            del self.namespaces.foo

    def test_contains_uri(self):
        self.namespaces.foo = "urn:example:foo"
        self.assertIn("urn:example:foo", self.namespaces)
        self.assertNotIn("urn:example:bar", self.namespaces)

    def test_predefined(self):
        self.assertEqual(
            "http://www.w3.org/XML/1998/namespace",
            utils.namespaces.xml,
        )
        self.assertEqual("urn:xbind:config", utils.namespaces.xbind_config)


class Testtag_to_str(unittest.TestCase):
    def test_namespaced(self):
        self.assertEqual(
            "{urn:example}foo",
            utils.tag_to_str(("urn:example", "foo")),
        )

    def test_unnamespaced(self):
        self.assertEqual("foo", utils.tag_to_str((None, "foo")))


class Testresolve_xml_base(unittest.TestCase):
    def test_absolute_without_base(self):
        self.assertEqual(
            "http://example.com/a/",
            utils.resolve_xml_base(None, "http://example.com/a/"),
        )

    def test_relative_without_base(self):
        with self.assertRaises(errors.ExtensionError) as ctx:
            utils.resolve_xml_base(None, "sub/")
        self.assertEqual(
            errors.ErrorCondition.INVALID_URI,
            ctx.exception.condition,
        )

    def test_relative_against_base(self):
        self.assertEqual(
            "http://x/y/sub/",
            utils.resolve_xml_base("http://x/y/", "sub/"),
        )

    def test_parent_segment(self):
        self.assertEqual(
            "http://x/z",
            utils.resolve_xml_base("http://x/y/", "../z"),
        )

    def test_absolute_replaces_base(self):
        self.assertEqual(
            "urn:other",
            utils.resolve_xml_base("http://x/y/", "urn:other"),
        )

    def test_invalid_uri(self):
        with self.assertRaises(errors.ExtensionError) as ctx:
            utils.resolve_xml_base(None, "http://[::1")
        self.assertEqual(
            errors.ErrorCondition.INVALID_URI,
            ctx.exception.condition,
        )
