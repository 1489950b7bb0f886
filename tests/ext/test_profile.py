########################################################################
# File name: test_profile.py
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
import threading
import time
import unittest
import unittest.mock

import xbind.ext.profile as profile_mod

from xbind.ext import AbstractExtension, ExtensionPoint
from xbind.structs import Namespace


A = Namespace("a", "urn:example:a")
B = Namespace("b", "urn:example:b")


class Foo(AbstractExtension):
    NAMESPACE = A
    LOCAL_NAME = "foo"


class Bar(AbstractExtension):
    NAMESPACE = B
    LOCAL_NAME = "bar"
    REQUIRED = True
    REPEATABLE = True


class Baz(AbstractExtension):
    NAMESPACE = A
    LOCAL_NAME = "*"


class Plain(AbstractExtension):
    LOCAL_NAME = "plain"


class Container(ExtensionPoint):
    NAMESPACE = A
    LOCAL_NAME = "container"

    @classmethod
    def declare_extensions(cls, profile):
        profile.declare(cls, Foo)


class Outer(ExtensionPoint):
    NAMESPACE = B
    LOCAL_NAME = "outer"

    @classmethod
    def declare_extensions(cls, profile):
        profile.declare(cls, Container)


class Base(ExtensionPoint):
    ADAPTABLE = True
    NAMESPACE = A
    LOCAL_NAME = "base"


class Derived(Base):
    pass


class MoreDerived(Derived):
    pass


class TestExtensionDescription(unittest.TestCase):
    def test_for_type(self):
        d = profile_mod.ExtensionDescription.for_type(Bar)
        self.assertIs(Bar, d.type_)
        self.assertEqual(B, d.namespace)
        self.assertEqual("bar", d.local_name)
        self.assertEqual(("urn:example:b", "bar"), d.tag)
        self.assertTrue(d.required)
        self.assertTrue(d.repeatable)
        self.assertFalse(d.aggregate)
        self.assertFalse(d.arbitrary_xml)
        self.assertFalse(d.mixed_content)
        self.assertIs(Bar, d.factory)

    def test_for_type_overrides(self):
        d = profile_mod.ExtensionDescription.for_type(
            Bar,
            required=False,
            local_name="other",
        )
        self.assertFalse(d.required)
        self.assertTrue(d.repeatable)
        self.assertEqual("other", d.local_name)

    def test_for_type_requires_name(self):
        class NoName:
            pass

        with self.assertRaises(TypeError):
            profile_mod.ExtensionDescription.for_type(NoName)

    def test_reject_empty_local_name(self):
        with self.assertRaises(ValueError):
            profile_mod.ExtensionDescription(Foo, A, "")

    def test_element_without_namespace(self):
        d = profile_mod.ExtensionDescription.for_type(Plain)
        self.assertEqual(Namespace(None, None), d.namespace)
        self.assertEqual((None, "plain"), d.tag)

    def test_factory(self):
        factory = unittest.mock.Mock()
        d = profile_mod.ExtensionDescription(Foo, A, "foo", factory=factory)
        self.assertIs(factory, d.factory)

    def test_replace(self):
        d1 = profile_mod.ExtensionDescription.for_type(Bar)
        d2 = d1.replace(required=False)
        self.assertFalse(d2.required)
        self.assertTrue(d2.repeatable)
        self.assertTrue(d1.required)
        self.assertEqual(d1.tag, d2.tag)

    def test_equality(self):
        d1 = profile_mod.ExtensionDescription.for_type(Foo)
        d2 = profile_mod.ExtensionDescription(Foo, A, "foo")
        self.assertEqual(d1, d2)
        self.assertEqual(hash(d1), hash(d2))
        self.assertNotEqual(d1, d1.replace(required=True))

    def test_ordering(self):
        d_foo = profile_mod.ExtensionDescription.for_type(Foo)
        d_bar = profile_mod.ExtensionDescription.for_type(Bar)
        d_plain = profile_mod.ExtensionDescription.for_type(Plain)
        d_all = profile_mod.ExtensionDescription.for_type(Baz)
        self.assertSequenceEqual(
            [d_plain, d_all, d_foo, d_bar],
            sorted([d_bar, d_foo, d_plain, d_all]),
        )

    def test_repr(self):
        d = profile_mod.ExtensionDescription.for_type(Bar)
        self.assertIn("{urn:example:b}bar", repr(d))
        self.assertIn("required,repeatable", repr(d))


class TestExtensionManifest(unittest.TestCase):
    def setUp(self):
        self.d_foo = profile_mod.ExtensionDescription.for_type(Foo)
        self.d_bar = profile_mod.ExtensionDescription.for_type(Bar)
        self.d_all = profile_mod.ExtensionDescription.for_type(Baz)

    def test_lookup(self):
        m = profile_mod.ExtensionManifest(Container)
        m.add(self.d_foo)
        self.assertIs(self.d_foo, m.lookup("urn:example:a", "foo"))
        self.assertIsNone(m.lookup("urn:example:a", "other"))
        self.assertIsNone(m.lookup(None, "foo"))

    def test_lookup_prefers_exact_match(self):
        m = profile_mod.ExtensionManifest(Container)
        m.add(self.d_all)
        m.add(self.d_foo)
        self.assertIs(self.d_foo, m.lookup("urn:example:a", "foo"))
        self.assertIs(self.d_all, m.lookup("urn:example:a", "other"))
        self.assertIsNone(m.lookup("urn:example:b", "other"))

    def test_redeclaration_replaces(self):
        m = profile_mod.ExtensionManifest(Container)
        m.add(self.d_foo)
        required = self.d_foo.replace(required=True)
        m.add(required)
        self.assertIs(required, m.lookup("urn:example:a", "foo"))
        self.assertEqual(1, len(m.supported))

    def test_required_descriptions(self):
        m = profile_mod.ExtensionManifest(Container)
        m.add(self.d_foo)
        m.add(self.d_bar)
        self.assertSequenceEqual([self.d_bar], m.required_descriptions())

    def test_namespaces(self):
        m = profile_mod.ExtensionManifest(Container)
        m.add(self.d_foo)
        m.add(self.d_bar)
        m.add(self.d_all)
        m.add(profile_mod.ExtensionDescription.for_type(Plain))
        self.assertSequenceEqual([A, B], list(m.namespaces))

    def test_base_manifest(self):
        base = profile_mod.ExtensionManifest(Base)
        base.add(self.d_foo)
        base.set_arbitrary_xml(mixed_content=True)
        derived = profile_mod.ExtensionManifest(Derived, base=base)
        self.assertIs(self.d_foo, derived.lookup("urn:example:a", "foo"))
        self.assertTrue(derived.arbitrary_xml)
        self.assertTrue(derived.mixed_content)

        base.add(self.d_bar)
        self.assertIs(self.d_bar, derived.lookup("urn:example:b", "bar"))

        derived.add(self.d_all)
        self.assertIsNone(base.lookup("urn:example:a", "other"))


class TestExtensionProfile(unittest.TestCase):
    def setUp(self):
        self.profile = profile_mod.ExtensionProfile()

    def tearDown(self):
        del self.profile

    def test_defaults(self):
        self.assertFalse(self.profile.auto_extending)
        self.assertTrue(self.profile.allows_arbitrary_xml)
        self.assertIsNone(self.profile.get_manifest(Container))
        self.assertSequenceEqual([], self.profile.manifests())

    def test_add_declarations_once(self):
        class Point(ExtensionPoint):
            declare_extensions = unittest.mock.Mock()

        self.assertFalse(self.profile.is_declared(Point))
        self.profile.add_declarations(Point)
        self.profile.add_declarations(Point())
        Point.declare_extensions.assert_called_once_with(self.profile)
        self.assertTrue(self.profile.is_declared(Point))

    def test_add_declarations_retries_after_failure(self):
        class Point(ExtensionPoint):
            declare_extensions = unittest.mock.Mock()

        Point.declare_extensions.side_effect = RuntimeError()
        with self.assertRaises(RuntimeError):
            self.profile.add_declarations(Point)
        self.assertFalse(self.profile.is_declared(Point))

        Point.declare_extensions.side_effect = None
        self.profile.add_declarations(Point)
        self.assertEqual(2, Point.declare_extensions.call_count)

    def test_declare_type(self):
        self.profile.declare(Container, Bar)
        d = self.profile.lookup(Container, "urn:example:b", "bar")
        self.assertIs(Bar, d.type_)
        self.assertTrue(d.required)

    def test_declare_description(self):
        d = profile_mod.ExtensionDescription.for_type(Foo, aggregate=True)
        self.profile.declare(Container, d)
        self.assertIs(d, self.profile.lookup(Container, "urn:example:a",
                                             "foo"))

    def test_lookup_unknown(self):
        self.assertIsNone(self.profile.lookup(Container, "urn:x", "foo"))
        self.profile.declare(Container, Foo)
        self.assertIsNone(self.profile.lookup(Container, "urn:x", "foo"))

    def test_nested_declarations_are_imported(self):
        self.profile.add_declarations(Outer)
        self.assertTrue(self.profile.is_declared(Container))
        self.assertIsNotNone(
            self.profile.lookup(Container, "urn:example:a", "foo")
        )

    def test_subclass_inherits_declarations(self):
        self.profile.declare(Base, Foo)
        self.assertIs(self.profile.get_manifest(Base),
                      self.profile.get_manifest(Derived))

        self.profile.declare(Derived, Bar)
        self.assertIsNotNone(
            self.profile.lookup(Derived, "urn:example:a", "foo")
        )
        self.assertIsNotNone(
            self.profile.lookup(Derived, "urn:example:b", "bar")
        )
        self.assertIsNone(self.profile.lookup(Base, "urn:example:b", "bar"))

    def test_base_declarations_are_forwarded(self):
        self.profile.declare(Base, Foo)
        self.profile.declare(Derived, Bar)
        self.profile.declare(Base, Baz)
        self.assertIsNotNone(
            self.profile.lookup(Derived, "urn:example:a", "other")
        )
        self.assertIsNotNone(
            self.profile.lookup(MoreDerived, "urn:example:a", "other")
        )

    def test_base_declared_after_subclass(self):
        self.profile.declare(Derived, Bar)
        self.profile.declare(MoreDerived, Plain)
        self.profile.declare(Base, Foo)
        for type_ in (Derived, MoreDerived):
            self.assertIsNotNone(
                self.profile.lookup(type_, "urn:example:a", "foo")
            )
            self.assertIsNotNone(
                self.profile.lookup(type_, "urn:example:b", "bar")
            )
        self.assertIsNone(self.profile.lookup(Base, "urn:example:b", "bar"))
        self.assertIsNone(self.profile.lookup(Derived, None, "plain"))

    def test_base_declarations_reach_subclass_declared_first(self):
        class Point(Base):
            @classmethod
            def declare_extensions(cls, profile):
                profile.declare(cls, Bar)
                profile.declare(Base, Foo)

        self.profile.add_declarations(Point)
        self.assertIsNotNone(
            self.profile.lookup(Point, "urn:example:a", "foo")
        )
        self.assertIsNotNone(
            self.profile.lookup(Point, "urn:example:b", "bar")
        )

    def test_intermediate_manifest_forwards_to_existing_subclass(self):
        self.profile.declare(Base, Plain)
        self.profile.declare(MoreDerived, Bar)
        self.profile.declare(Derived, Foo)
        self.profile.declare(Base, Baz)
        self.assertIsNotNone(
            self.profile.lookup(MoreDerived, "urn:example:a", "foo")
        )
        self.assertIsNotNone(
            self.profile.lookup(MoreDerived, "urn:example:a", "other")
        )
        self.assertIsNotNone(self.profile.lookup(MoreDerived, None, "plain"))
        self.assertIsNone(self.profile.lookup(Base, "urn:example:a", "foo"))
        self.assertEqual(
            [self.profile.get_manifest(MoreDerived)],
            self.profile.get_manifest(Derived).subclass_manifests,
        )
        self.assertEqual(
            [self.profile.get_manifest(Derived)],
            self.profile.get_manifest(Base).subclass_manifests,
        )

    def test_own_declaration_wins_over_later_base_declaration(self):
        self.profile.declare(Derived, Bar)
        self.profile.declare(
            Base,
            profile_mod.ExtensionDescription.for_type(Bar, required=False),
        )
        self.assertTrue(
            self.profile.lookup(Derived, "urn:example:b", "bar").required
        )
        self.assertFalse(
            self.profile.lookup(Base, "urn:example:b", "bar").required
        )

    def test_add_declarations_from_threads(self):
        class Point(ExtensionPoint):
            declare_extensions = unittest.mock.Mock()

        def declare_extensions(profile):
            time.sleep(0.01)
            profile.declare(Point, Foo)
            profile.declare(Point, Bar)

        Point.declare_extensions.side_effect = declare_extensions
        barrier = threading.Barrier(8)
        found = []

        def run():
            barrier.wait()
            self.profile.add_declarations(Point)
            found.append(
                self.profile.lookup(Point, "urn:example:b", "bar")
            )

        threads = [threading.Thread(target=run) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(8, len(found))
        self.assertNotIn(None, found)
        Point.declare_extensions.assert_called_once_with(self.profile)
        manifest = self.profile.get_manifest(Point)
        self.assertCountEqual(
            [("urn:example:a", "foo"), ("urn:example:b", "bar")],
            list(manifest.supported),
        )

    def test_auto_extending(self):
        profile = profile_mod.ExtensionProfile(auto_extending=True)
        profile.declare(MoreDerived, Bar)
        d = profile.lookup(Base, "urn:example:b", "bar")
        self.assertIsNotNone(d)
        self.assertFalse(d.required)
        self.assertTrue(profile.lookup(MoreDerived, "urn:example:b",
                                       "bar").required)
        self.assertNotIn(Derived, dict(profile.manifests()))

    def test_no_auto_extending(self):
        self.profile.declare(MoreDerived, Bar)
        self.assertIsNone(self.profile.lookup(Base, "urn:example:b", "bar"))

    def test_declare_arbitrary_xml(self):
        self.profile.declare_arbitrary_xml(Container, mixed_content=True,
                                           full_text_index=True)
        manifest = self.profile.get_manifest(Container)
        self.assertTrue(manifest.arbitrary_xml)
        self.assertTrue(manifest.mixed_content)
        self.assertTrue(manifest.full_text_index)

    def test_arbitrary_xml_of_extension(self):
        d = profile_mod.ExtensionDescription.for_type(
            Container,
            arbitrary_xml=True,
            mixed_content=True,
        )
        self.profile.declare(Outer, d)
        manifest = self.profile.get_manifest(Container)
        self.assertTrue(manifest.arbitrary_xml)
        self.assertTrue(manifest.mixed_content)

    def test_create_extension(self):
        d = profile_mod.ExtensionDescription.for_type(Foo)
        self.profile.declare(Container, d)
        self.assertIsInstance(self.profile.create_extension(d), Foo)

    def test_create_extension_uses_registered_factory(self):
        instance = Foo()
        factory = unittest.mock.Mock(return_value=instance)
        self.profile.declare(Container, profile_mod.ExtensionDescription(
            Foo, A, "foo", factory=factory,
        ))
        self.assertIs(
            instance,
            self.profile.create_extension(
                profile_mod.ExtensionDescription.for_type(Foo)
            ),
        )
        factory.assert_called_once_with()

    def test_namespaces_in_use(self):
        c = Namespace("c", "urn:example:c")
        self.profile.declare_additional_namespace(c)
        self.profile.declare(Outer, Bar)
        self.profile.add_declarations(Outer)
        self.assertSequenceEqual(
            [B, A, c],
            list(self.profile.namespaces_in_use(Outer)),
        )
        self.assertSequenceEqual(
            [A, c],
            list(self.profile.namespaces_in_use(Container)),
        )

    def test_get_namespace_decls(self):
        self.profile.declare(Container, Foo)
        self.assertSequenceEqual([A], list(self.profile.get_namespace_decls()))
        self.assertIs(self.profile.get_namespace_decls(),
                      self.profile.get_namespace_decls())
        self.profile.declare(Container, Bar)
        self.assertSequenceEqual(
            [A, B],
            list(self.profile.get_namespace_decls()),
        )
