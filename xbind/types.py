########################################################################
# File name: types.py
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
:mod:`~xbind.types` --- Types for use with attribute values
##########################################################

This module provides classes which convert attribute values and text
content between their XML character data representation and python values.
They are used by :class:`~xbind.attrs.AttributeHelper` when consuming and by
:class:`~xbind.attrs.AttributeGenerator` when producing attributes.

.. autoclass:: AbstractCDataType

.. autoclass:: String

.. autoclass:: Integer

.. autoclass:: Decimal

.. autoclass:: Float

.. autoclass:: Bool

.. autoclass:: EnumCDataType

.. autoclass:: LanguageTag

"""
import abc
import decimal
import math
import numbers

from . import structs


class AbstractCDataType(metaclass=abc.ABCMeta):
    """
    Subclasses of this class describe character data types.

    They are used to convert python values from (:meth:`parse`) and to
    (:meth:`format`) XML character data as well as enforce basic type
    restrictions (:meth:`coerce`).

    .. automethod:: coerce

    .. automethod:: parse

    .. automethod:: format
    """

    def coerce(self, v):
        """
        Force the given value `v` to be of the type represented by this
        :class:`AbstractCDataType`.

        If `v` cannot be sensibly coerced, :class:`TypeError` is raised.

        Return a coerced version of `v` or `v` itself if it matches the
        required type.
        """
        return v

    @abc.abstractmethod
    def parse(self, v):
        """
        Convert the given string `v` into a value of the appropriate type this
        class implements and return the result.

        If conversion fails, :class:`ValueError` is raised.
        """

    def format(self, v):
        """
        Convert the value `v` of the type this class implements to a str.

        The returned value can be passed to :meth:`parse` to obtain `v`.
        """
        return str(v)


class String(AbstractCDataType):
    """
    String :term:`Character Data Type`.
    """

    def coerce(self, v):
        if not isinstance(v, str):
            raise TypeError("must be a str object")
        return v

    def parse(self, v):
        return v


class Integer(AbstractCDataType):
    """
    Integer :term:`Character Data Type`, to the base 10.
    """

    def coerce(self, v):
        if isinstance(v, bool) or not isinstance(v, numbers.Integral):
            raise TypeError("must be integral number")
        return int(v)

    def parse(self, v):
        return int(v)


class Decimal(AbstractCDataType):
    """
    Arbitrary precision decimal :term:`Character Data Type`, using
    :class:`decimal.Decimal`.
    """

    def coerce(self, v):
        if isinstance(v, decimal.Decimal):
            return v
        if isinstance(v, bool) or not isinstance(v, numbers.Integral):
            raise TypeError("must be a decimal or an integral number")
        return decimal.Decimal(v)

    def parse(self, v):
        try:
            return decimal.Decimal(v.strip())
        except decimal.InvalidOperation:
            raise ValueError("not a decimal value: {!r}".format(v)) from None


class Float(AbstractCDataType):
    """
    Floating point :term:`Character Data Type`.

    In addition to the python float syntax, the XML schema spelling of the
    infinities is understood: ``INF`` and ``-INF``. When formatting, the
    infinities are emitted in that spelling as well.
    """

    def coerce(self, v):
        if not isinstance(v, (numbers.Real, decimal.Decimal)):
            raise TypeError("must be real number")
        return float(v)

    def parse(self, v):
        v = v.strip()
        if v == "INF":
            return math.inf
        if v == "-INF":
            return -math.inf
        return float(v)

    def format(self, v):
        if math.isinf(v):
            return "INF" if v > 0 else "-INF"
        return str(v)


class Bool(AbstractCDataType):
    """
    XML boolean :term:`Character Data Type`.

    Parse the value as boolean, ignoring case and surrounding whitespace:

    * ``"true"`` and ``"1"`` are taken as :data:`True`,
    * ``"false"`` and ``"0"`` are taken as :data:`False`,
    * everything else results in a :class:`ValueError` exception.

    """

    def coerce(self, v):
        return bool(v)

    def parse(self, v):
        v = v.strip().lower()
        if v in ["true", "1"]:
            return True
        elif v in ["false", "0"]:
            return False
        else:
            raise ValueError("not a boolean value")

    def format(self, v):
        if v:
            return "true"
        else:
            return "false"


def _member_from_name(enum_class, value):
    try:
        return enum_class[value.upper()]
    except KeyError:
        raise ValueError(
            "not a valid {} value: {!r}".format(enum_class.__name__, value)
        ) from None


def _name_to_value(member):
    return member.name.lower()


class EnumCDataType(AbstractCDataType):
    """
    Use an :class:`enum.Enum` as attribute type.

    :param enum_class: The :class:`~enum.Enum` to use as type.
    :param to_member: Function mapping the attribute value to a member of
        `enum_class`. It must raise :class:`ValueError` for unknown values.
    :param to_attribute_value: Function mapping a member to its attribute
        value.

    By default, values are matched against the member names after
    upper-casing them, and members are written as their lower-cased name.
    Schemas whose spelling does not follow that convention inject their own
    mapping functions. If only `to_attribute_value` is given, it is also
    used in reverse for parsing::

      class Rel(enum.Enum):
          ALTERNATE = 1
          ENCLOSURE = 2

      EnumCDataType(Rel)  # parses "alternate", "Alternate", ...
    """

    def __init__(self, enum_class, to_member=None, to_attribute_value=None):
        super().__init__()
        self.enum_class = enum_class
        self.to_member = to_member
        self._inverse = to_attribute_value is not None
        self.to_attribute_value = to_attribute_value or _name_to_value

    def coerce(self, value):
        if isinstance(value, self.enum_class):
            return value
        raise TypeError("not a valid {} value: {!r}".format(
            self.enum_class,
            value,
        ))

    def parse(self, s):
        if self.to_member is not None:
            return self.to_member(s)
        if self._inverse:
            for member in self.enum_class:
                if self.to_attribute_value(member) == s:
                    return member
            raise ValueError("not a valid {} value: {!r}".format(
                self.enum_class.__name__, s,
            ))
        return _member_from_name(self.enum_class, s)

    def format(self, v):
        return self.to_attribute_value(v)


class LanguageTag(AbstractCDataType):
    """
    :term:`Character Data Type` for language tags.

    Parses the value as Language Tag using
    :meth:`~.structs.LanguageTag.fromstr`.
    """

    def parse(self, v):
        return structs.LanguageTag.fromstr(v)

    def coerce(self, v):
        if not isinstance(v, structs.LanguageTag):
            raise TypeError("{!r} is not a LanguageTag".format(v))
        return v
