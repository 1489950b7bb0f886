########################################################################
# File name: __init__.py
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
:mod:`~xbind.ext` --- Extensible records
########################################

This subpackage maps XML elements to python objects in a way which can be
extended after the fact: the set of child elements a record type
understands is not fixed in the type itself, but declared in an
:class:`ExtensionProfile`. Elements nobody declared are kept verbatim, so
that a document which is parsed and generated again still contains them.

Introduction
============

A record type is a subclass of :class:`ExtensionPoint`. The elements it
accepts are declared from its ``declare_extensions`` classmethod:

.. code:: python

    ATOM = xbind.Namespace("atom", "http://www.w3.org/2005/Atom")

    class Title(xbind.ext.AbstractExtension):
        NAMESPACE = ATOM
        LOCAL_NAME = "title"
        REQUIRED = True

        def consume_attributes(self, helper):
            self.type_ = helper.consume("type")
            self.text = helper.consume_content()

        def put_attributes(self, gen):
            gen.put("type", self.type_)
            gen.content = self.text

    class Link(xbind.ext.AbstractExtension):
        NAMESPACE = ATOM
        LOCAL_NAME = "link"
        REPEATABLE = True

        ...

    class Entry(xbind.ext.ExtensionPoint):
        NAMESPACE = ATOM
        LOCAL_NAME = "entry"

        @classmethod
        def declare_extensions(cls, profile):
            profile.declare(cls, Title)
            profile.declare(cls, Link)
            profile.declare_arbitrary_xml(cls)

The class attributes of an extension (``NAMESPACE``, ``LOCAL_NAME``,
``REQUIRED``, ``REPEATABLE``, ``AGGREGATE``, ``ARBITRARY_XML`` and
``MIXED_CONTENT``) are its defaults; a different
:class:`ExtensionDescription` can be passed to
:meth:`ExtensionProfile.declare` instead of the type to override them for a
specific container.

Cardinality
-----------

A non-repeatable extension occurs at most once; a second occurrence is an
error, unless the extension is aggregate, in which case further occurrences
are parsed into the same instance. Repeatable extensions are collected in a
list. Required extensions must be present when the container element is
closed.

Unrecognized XML
----------------

If arbitrary XML is declared for a container type (and the profile allows
it), unknown child elements are stored in its :attr:`ExtensionPoint.fragment`
as serialized XML, together with the namespace declarations they use. They
are written back after the extensions on generation. Otherwise, unknown
children are an error.

Extensions
==========

.. autoclass:: Extension

.. autoclass:: AbstractExtension

.. autoclass:: ValidatingExtension

Extension points
================

.. autoclass:: ExtensionPoint

.. autoclass:: ExtensionState

.. autoclass:: ExtensionVisitor

Profiles
========

.. autoclass:: ExtensionProfile

.. autoclass:: ExtensionManifest

.. autoclass:: ExtensionDescription

Parsing internals
=================

.. autoclass:: ExtensionElementHandler

.. autoclass:: ExtensionPointHandler

.. currentmodule:: xbind.ext.adapt

Adaptation
==========

See :mod:`xbind.ext.adapt`.

.. currentmodule:: xbind.ext.config

Configuration documents
=======================

See :mod:`xbind.ext.config`.
"""

from .profile import (  # NOQA: F401
    ExtensionDescription,
    ExtensionManifest,
    ExtensionProfile,
)

from .model import (  # NOQA: F401
    Extension,
    AbstractExtension,
    ValidatingExtension,
    ExtensionVisitor,
    ExtensionState,
    ExtensionPoint,
    ExtensionElementHandler,
    ExtensionPointHandler,
)

from .adapt import AdaptorRegistry  # NOQA: F401
from .config import (  # NOQA: F401
    CONFIG_NAMESPACE,
    parse_config,
    generate_config,
)
