########################################################################
# File name: utils.py
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
:mod:`~xbind.utils` --- Internal utils
######################################

Miscellaneous utilities used throughout the xbind codebase.

.. data:: namespaces

   Collects the namespaces xbind itself needs. Each namespace is given a
   shortname and its value is the namespace string.

   .. note:: Third-party users should not assign short-names for their own
             namespaces here, but instead use a separate instance of
             :class:`Namespaces`.

.. autoclass:: Namespaces

.. autofunction:: tag_to_str

.. autofunction:: resolve_xml_base

"""
import urllib.parse

import lxml.etree as etree

from . import errors

__all__ = [
    "etree",
    "namespaces",
]


class Namespaces:
    """
    Manage short-hands for XML namespaces.

    Instances of this class may be used to assign mnemonic short-hands
    to XML namespaces, for example:

    .. code-block:: python

        namespaces = Namespaces()
        namespaces.foo = "urn:example:foo"
        namespaces.bar = "urn:example:bar"

    The class ensures that only one short-hand is bound to each namespace,
    that no short-hand is redefined to point to a different namespace and
    that short-hands are never deleted. Violations raise :class:`ValueError`
    (or :class:`AttributeError` for deletion).

    The defined short-hands MUST NOT start with an underscore.
    """

    def __init__(self):
        self._all_namespaces = {}

    def __setattr__(self, attr, value):
        if not attr.startswith("_"):
            try:
                existing_attr = self._all_namespaces[value]
                if attr != existing_attr:
                    raise ValueError(
                        "namespace {} already defined as {}".format(
                            value,
                            existing_attr,
                        )
                    )
            except KeyError:
                try:
                    if getattr(self, attr) != value:
                        raise ValueError("inconsistent namespace redefinition")
                except AttributeError:
                    pass
            self._all_namespaces[value] = attr
        super().__setattr__(attr, value)

    def __delattr__(self, attr):
        if not attr.startswith("_"):
            raise AttributeError("deleting short-hands is prohibited")
        super().__delattr__(attr)

    def __contains__(self, uri):
        return uri in self._all_namespaces


namespaces = Namespaces()
namespaces.xml = "http://www.w3.org/XML/1998/namespace"
namespaces.xmlns = "http://www.w3.org/2000/xmlns/"
namespaces.xbind_config = "urn:xbind:config"


def tag_to_str(tag):
    """
    `tag` must be a tuple ``(namespace_uri, localname)``. Return a tag string
    conforming to the ElementTree specification. Example::

         tag_to_str(("urn:example:atom", "feed")) == "{urn:example:atom}feed"
    """
    return "{{{:s}}}{:s}".format(*tag) if tag[0] else tag[1]


def resolve_xml_base(current, value):
    """
    Combine the inherited ``xml:base`` `current` with the ``xml:base`` value
    `value` found on an element.

    Without an inherited base, `value` must be an absolute URI. Otherwise,
    `value` is resolved against `current` following :rfc:`3986`.

    :raises xbind.errors.ExtensionError: with
        :attr:`~.ErrorCondition.INVALID_URI` if the result would not be
        absolute or `value` is not a URI reference.
    """
    try:
        parts = urllib.parse.urlsplit(value)
    except ValueError as exc:
        raise errors.ExtensionError(
            errors.ErrorCondition.INVALID_URI,
            "invalid xml:base {!r}: {}".format(value, exc),
        ) from None

    if current is None:
        if not parts.scheme:
            raise errors.ExtensionError(
                errors.ErrorCondition.INVALID_URI,
                "relative xml:base {!r} without an absolute base".format(
                    value
                ),
            )
        return value

    return urllib.parse.urljoin(current, value)
