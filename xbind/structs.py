########################################################################
# File name: structs.py
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
:mod:`~xbind.structs` --- Simple data holders for common data types
###################################################################

These classes provide a way to hold text-serialisable data in a structured
way.

Namespaces
==========

.. autoclass:: Namespace

Language tags
=============

.. autoclass:: LanguageTag

"""
import collections


class Namespace(collections.namedtuple("Namespace", ["alias", "uri"])):
    """
    A namespace binding, consisting of the preferred prefix `alias` and the
    namespace `uri`.

    .. attribute:: alias

       The prefix to use for the namespace. :data:`None` denotes the default
       namespace (no prefix).

    .. attribute:: uri

       The namespace URI.

    Two bindings are equal if both alias and URI are equal. Bindings are
    ordered by alias first, with the default namespace sorting first.
    """

    __slots__ = ()

    def __new__(cls, alias, uri):
        if alias == "":
            alias = None
        if not uri and alias is not None:
            raise ValueError("prefixed namespace requires a URI")
        return super().__new__(cls, alias, uri)

    def qualify(self, local_name):
        """
        Return the qualified name of `local_name` in this namespace.
        """
        if self.alias:
            return "{}:{}".format(self.alias, local_name)
        return local_name

    def __lt__(self, other):
        if not isinstance(other, Namespace):
            return NotImplemented
        return ((self.alias or "", self.uri or "") <
                (other.alias or "", other.uri or ""))

    def __str__(self):
        if self.alias:
            return "xmlns:{}={!r}".format(self.alias, self.uri)
        return "xmlns={!r}".format(self.uri or "")


class LanguageTag:
    """
    Implementation of a language tag, as found in ``xml:lang``. There is no
    input validation of any kind.

    :class:`LanguageTag` instances compare and hash case-insensitively.

    .. automethod:: fromstr

    .. autoattribute:: match_str

    .. autoattribute:: print_str

    """

    __slots__ = ("_tag",)

    def __init__(self, *, tag=None):
        if not tag:
            raise ValueError("tag cannot be empty")

        self._tag = tag

    @property
    def match_str(self):
        """
        The lower-cased :attr:`print_str`, used for comparisons.
        """
        return self._tag.lower()

    @property
    def print_str(self):
        """
        The language tag as it was given.
        """
        return self._tag

    @classmethod
    def fromstr(cls, s):
        """
        Create a language tag from the given string `s`.
        """
        return cls(tag=s)

    def __str__(self):
        return self.print_str

    def __eq__(self, other):
        try:
            return self.match_str == other.match_str
        except AttributeError:
            return False

    def __lt__(self, other):
        try:
            return self.match_str < other.match_str
        except AttributeError:
            return NotImplemented

    def __hash__(self):
        return hash(self.match_str)

    def __repr__(self):
        return "<{}.{}.fromstr({!r})>".format(
            type(self).__module__,
            type(self).__qualname__,
            str(self))
