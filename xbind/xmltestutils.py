########################################################################
# File name: xmltestutils.py
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
Test helpers which compare XML by its infoset instead of by its text.

Prefixes, attribute order and the placement of namespace declarations do
not matter for the comparison; element names, attribute names and values,
text and the order of children do.
"""
import unittest

import lxml.etree as etree


def element_path(el, upto=None):
    segments = []
    parent = el.getparent()

    while parent is not None and parent != upto:
        similar = list(parent.iterchildren(el.tag))
        segments.insert(0, (el.tag, similar.index(el)))
        el = parent
        parent = el.getparent()

    base = "/" + el.tag
    if segments:
        return base + "/" + "/".join(
            "{}[{}]".format(tag, index)
            for tag, index in segments
        )
    return base


def parse_xml(text):
    """
    Parse `text` (:class:`str` or :class:`bytes`) into an :mod:`lxml`
    element. An XML declaration in a :class:`str` is allowed.
    """
    if isinstance(text, str):
        text = text.encode("utf-8")
    return etree.fromstring(text)


def _normalize_text(text, ignore_whitespace):
    text = text or ""
    if ignore_whitespace:
        return text.strip()
    return text


class XMLTestCase(unittest.TestCase):
    def assertAttributesEqual(self, el1, el2, ignore_surplus_attr=False):
        attrs1 = dict(el1.attrib)
        attrs2 = dict(el2.attrib)

        if ignore_surplus_attr:
            for key in set(attrs2) - set(attrs1):
                del attrs2[key]

        self.assertSetEqual(
            set(attrs1),
            set(attrs2),
            "attribute differences at {}".format(element_path(el2)),
        )
        for key, value in attrs1.items():
            self.assertEqual(
                value,
                attrs2[key],
                "attribute value difference at {}@{}".format(
                    element_path(el2), key,
                ),
            )

    def assertTextEqual(self, el1, el2, ignore_whitespace=False):
        parts1 = [_normalize_text(el1.text, ignore_whitespace)]
        parts1.extend(_normalize_text(child.tail, ignore_whitespace)
                      for child in el1)
        parts2 = [_normalize_text(el2.text, ignore_whitespace)]
        parts2.extend(_normalize_text(child.tail, ignore_whitespace)
                      for child in el2)
        self.assertSequenceEqual(
            parts1,
            parts2,
            "text mismatch at {}".format(element_path(el2)),
        )

    def assertSubtreeEqual(self, tree1, tree2,
                           ignore_surplus_attr=False,
                           ignore_whitespace=False):
        """
        Assert that the :mod:`lxml` elements `tree1` and `tree2` are equal,
        including the order of their children.
        """
        self.assertEqual(tree1.tag, tree2.tag,
                         "tag mismatch at {}".format(element_path(tree2)))
        self.assertAttributesEqual(tree1, tree2,
                                   ignore_surplus_attr=ignore_surplus_attr)
        self.assertTextEqual(tree1, tree2,
                             ignore_whitespace=ignore_whitespace)

        children1 = list(tree1)
        children2 = list(tree2)
        self.assertSequenceEqual(
            [child.tag for child in children1],
            [child.tag for child in children2],
            "children mismatch at {}".format(element_path(tree2)),
        )
        for child1, child2 in zip(children1, children2):
            self.assertSubtreeEqual(
                child1, child2,
                ignore_surplus_attr=ignore_surplus_attr,
                ignore_whitespace=ignore_whitespace,
            )

    def assertXMLEqual(self, text1, text2, **kwargs):
        """
        Assert that the XML documents `text1` and `text2` are equal. See
        :meth:`assertSubtreeEqual` for the keyword arguments.
        """
        self.assertSubtreeEqual(parse_xml(text1), parse_xml(text2), **kwargs)
