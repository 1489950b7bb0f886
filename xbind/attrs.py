########################################################################
# File name: attrs.py
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
:mod:`~xbind.attrs` --- Consuming and producing attributes
##########################################################

Extensions do not read SAX attribute objects directly. When an extension
element has been parsed, its attributes and text content are handed to the
extension wrapped in an :class:`AttributeHelper`, which converts values and
keeps track of what has been looked at. Anything left over afterwards is an
error.

When generating, the extension fills an :class:`AttributeGenerator`, which
keeps the insertion order and drops unset values.

.. autoclass:: AttributeHelper

.. autoclass:: AttributeGenerator

"""
import enum
import numbers

import multidict

from . import errors, structs, types
from .utils import namespaces


_BOOL = types.Bool()
_INTEGER = types.Integer()
_DECIMAL = types.Decimal()
_FLOAT = types.Float()


class AttributeHelper:
    """
    Wrap the attributes and text content of one element for consumption.

    :param attrs: Attributes of the element.
    :type attrs: mapping of ``(namespace_uri, localname)`` tuples to
        :class:`str`, as provided by SAX
    :param content: Text content of the element, or :data:`None`.
    :param inherited: Snapshot (see :meth:`snapshot`) whose values are used
        for attributes and content this element does not carry.

    Attributes are keyed by their local name, regardless of the namespace.
    If the same local name occurs in more than one namespace, the name is
    reported as duplicate by :meth:`assert_all_consumed`. Attributes in the
    XML namespace are context (``xml:lang``, ``xml:base``) and are not
    visible here.

    All ``consume_*`` methods take the attribute name and a flag whether the
    attribute is required. A required attribute which is absent raises
    :class:`~.errors.ExtensionError` with
    :attr:`~.ErrorCondition.MISSING_ATTRIBUTE`; a value which cannot be
    converted raises :attr:`~.ErrorCondition.INVALID_ATTRIBUTE_VALUE`.

    .. automethod:: add

    .. automethod:: consume

    .. automethod:: consume_content

    .. automethod:: consume_typed

    .. automethod:: consume_integer

    .. automethod:: consume_decimal

    .. automethod:: consume_float

    .. automethod:: consume_boolean

    .. automethod:: consume_enum

    .. automethod:: assert_all_consumed

    .. automethod:: snapshot
    """

    def __init__(self, attrs=None, content=None, *, inherited=None):
        super().__init__()
        self._attrs = multidict.MultiDict()
        self._seen = {}
        self._duplicates = set()
        self._content_consumed = False
        if inherited is not None:
            self._inherited, inherited_content = inherited
        else:
            self._inherited, inherited_content = {}, None
        self._inherited = dict(self._inherited)
        self.content = content if content is not None else inherited_content
        if attrs:
            for (namespace_uri, localname), value in attrs.items():
                self.add(namespace_uri, localname, value)

    def add(self, namespace_uri, localname, value):
        """
        Add one attribute. Attributes in the XML namespace are ignored.
        """
        if namespace_uri == namespaces.xml:
            return
        if localname in self._seen:
            self._duplicates.add(localname)
        else:
            self._seen[localname] = value
        self._attrs.add(localname, value)

    def __contains__(self, name):
        return name in self._attrs or name in self._inherited

    def snapshot(self):
        """
        Return the attributes and content this helper was created with, in
        the format accepted by the `inherited` argument.
        """
        attrs = dict(self._inherited)
        attrs.update(self._seen)
        return attrs, self.content

    def consume(self, name, required=False):
        """
        Consume the attribute `name` and return its value as :class:`str`,
        or :data:`None` if it is absent and not required.
        """
        try:
            values = self._attrs.popall(name)
        except KeyError:
            try:
                return self._inherited.pop(name)
            except KeyError:
                pass
            if required:
                raise errors.ExtensionError(
                    errors.ErrorCondition.MISSING_ATTRIBUTE,
                    "Missing attribute: '{}'".format(name),
                ) from None
            return None

        self._inherited.pop(name, None)
        return values[0]

    def consume_content(self, required=False):
        """
        Consume the text content of the element. If `required` is true and
        there is no text content,
        :attr:`~.ErrorCondition.MISSING_REQUIRED_CONTENT` is raised.
        """
        self._content_consumed = True
        if self.content is None and required:
            raise errors.ExtensionError(
                errors.ErrorCondition.MISSING_REQUIRED_CONTENT,
                "Missing required text content",
            )
        return self.content

    def consume_typed(self, name, required, type_, default=None):
        """
        Consume the attribute `name` and parse it using the
        :class:`~xbind.types.AbstractCDataType` `type_`. If the attribute is
        absent, `default` is returned.
        """
        value = self.consume(name, required)
        if value is None:
            return default
        try:
            return type_.parse(value)
        except ValueError as exc:
            raise errors.ExtensionError(
                errors.ErrorCondition.INVALID_ATTRIBUTE_VALUE,
                "Invalid value for attribute: '{}': {}".format(name, exc),
            ) from None

    def consume_integer(self, name, required=False, default=None):
        return self.consume_typed(name, required, _INTEGER, default)

    def consume_decimal(self, name, required=False, default=None):
        return self.consume_typed(name, required, _DECIMAL, default)

    def consume_float(self, name, required=False, default=None):
        """
        Consume a floating point attribute. ``INF`` and ``-INF`` map to the
        infinities.
        """
        return self.consume_typed(name, required, _FLOAT, default)

    def consume_boolean(self, name, required=False, default=False):
        """
        Consume a boolean attribute. ``true``, ``false``, ``1`` and ``0`` are
        accepted, ignoring case.
        """
        return self.consume_typed(name, required, _BOOL, default)

    def consume_enum(self, name, required, enum_class, default=None,
                     to_attribute_value=None, to_member=None):
        """
        Consume an attribute whose value names a member of `enum_class`.

        `to_attribute_value` maps members to attribute values and is used in
        reverse; `to_member` maps the attribute value to the member directly.
        By default, the upper-cased value is looked up by member name.
        """
        return self.consume_typed(
            name, required,
            types.EnumCDataType(enum_class, to_member=to_member,
                                to_attribute_value=to_attribute_value),
            default,
        )

    def assert_all_consumed(self):
        """
        Raise :class:`~.errors.ExtensionError` if attributes are left over or
        non-whitespace text content has not been consumed.
        """
        unknown = sorted(set(self._attrs.keys()))
        duplicates = sorted(self._duplicates)
        if unknown:
            raise errors.ExtensionError(
                errors.ErrorCondition.UNEXPECTED_ATTRIBUTE,
                "Unknown attribute(s): {}".format(
                    ", ".join("'{}'".format(name) for name in unknown)
                ),
            )
        if duplicates:
            raise errors.ExtensionError(
                errors.ErrorCondition.DUPLICATE_ATTRIBUTE,
                "Duplicate attribute(s): {}".format(
                    ", ".join("'{}'".format(name) for name in duplicates)
                ),
            )
        if (not self._content_consumed and
                self.content is not None and
                self.content.strip()):
            raise errors.ExtensionError(
                errors.ErrorCondition.TEXT_NOT_ALLOWED,
                "Unexpected text content",
            )


class AttributeGenerator(dict):
    """
    Ordered collection of attributes to emit on an element.

    Keys are either attribute names (:class:`str`) or tuples of a
    :class:`~xbind.structs.Namespace` and a local name for namespaced
    attributes. Putting :data:`None` keeps the position of the key, but the
    attribute is not emitted (see :meth:`emitted`). Putting an existing key
    again keeps its original position.

    .. attribute:: content

       Text content to emit inside the element, or :data:`None`.

    .. automethod:: put

    .. automethod:: put_enum

    .. automethod:: emitted
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.content = None

    def put(self, name, value, type_=None):
        """
        Put the attribute `name` with the given `value`.

        Without `type_`, the value is formatted according to its python
        type: booleans as ``true``/``false``, floats with the ``INF``
        spelling for the infinities, enumeration members as their
        lower-cased name and anything else through :func:`str`. With
        `type_`, :meth:`~.AbstractCDataType.format` of that type is used.
        """
        if value is None:
            self[name] = None
        elif type_ is not None:
            self[name] = type_.format(value)
        elif isinstance(value, bool):
            self[name] = _BOOL.format(value)
        elif isinstance(value, float):
            self[name] = _FLOAT.format(value)
        elif isinstance(value, enum.Enum):
            self[name] = types.EnumCDataType(type(value)).format(value)
        elif isinstance(value, (str, numbers.Number, structs.LanguageTag)):
            self[name] = str(value)
        else:
            raise TypeError(
                "cannot format {!r} as attribute value".format(value)
            )

    def put_enum(self, name, value, to_attribute_value=None):
        """
        Put an enumeration member, mapped to its attribute value using
        `to_attribute_value` (default: lower-cased member name).
        """
        if value is None:
            self[name] = None
            return
        self[name] = types.EnumCDataType(
            type(value),
            to_attribute_value=to_attribute_value,
        ).format(value)

    def emitted(self):
        """
        Iterate over ``(name, value)`` pairs of all attributes whose value is
        not :data:`None`, in insertion order.
        """
        for name, value in self.items():
            if value is not None:
                yield name, value
