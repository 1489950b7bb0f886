########################################################################
# File name: errors.py
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
:mod:`~xbind.errors` --- Exception classes
##########################################

Every failure reported by xbind carries an :class:`ErrorCondition`, which
identifies the kind of problem independently of the message text.

.. autoclass:: ErrorCondition

.. autoclass:: ExtensionError

.. autoclass:: ParseError

.. autofunction:: format_error_text

"""
import enum


def format_error_text(condition, text=None):
    error_tag = condition.value
    if text:
        error_tag += " ({})".format(text)
    return error_tag


class ErrorCondition(enum.Enum):
    """
    Enumeration of the error conditions reported by xbind. The values are the
    reason codes which also appear in the error messages.

    .. attribute:: UNRECOGNIZED_ELEMENT

       A child element is neither known to its container nor may it be kept
       as arbitrary XML.

    .. attribute:: DUPLICATE_EXTENSION

       A non-repeatable, non-aggregate extension occurs twice.

    .. attribute:: MISSING_REQUIRED_EXTENSION

       A required extension was absent when its container was closed.

    .. attribute:: CANNOT_CREATE_EXTENSION

       The factory of a registered extension failed.

    .. attribute:: INVALID_ATTRIBUTE_VALUE

       An attribute value is not in the expected format.

    .. attribute:: MISSING_ATTRIBUTE

       A required attribute is absent.

    .. attribute:: UNEXPECTED_ATTRIBUTE

       An attribute was not consumed by the extension.

    .. attribute:: DUPLICATE_ATTRIBUTE

       The same attribute name occurs more than once (in different
       namespaces).

    .. attribute:: TEXT_NOT_ALLOWED

       Non-whitespace text was found where no text is allowed.

    .. attribute:: MISSING_REQUIRED_CONTENT

       Text content is required but absent.

    .. attribute:: INVALID_URI

       An ``xml:base`` value could not be resolved to an absolute URI.

    .. attribute:: INVALID_ROOT_ELEMENT

       The document root is not the expected element.

    .. attribute:: UNDECLARED_NAMESPACE

       A namespace used inside preserved XML is not declared.

    .. attribute:: MALFORMED_XML

       The underlying XML parser rejected the input.

    .. attribute:: UNKNOWN_EXTENSION_TYPE

       A configuration document names a type which is not known.

    .. attribute:: MISSING_NAMESPACE_DESCRIPTION

       A configuration document uses a namespace alias which it did not
       describe.
    """

    UNRECOGNIZED_ELEMENT = "unrecognizedElement"
    DUPLICATE_EXTENSION = "duplicateExtension"
    MISSING_REQUIRED_EXTENSION = "missingExtensionElement"
    CANNOT_CREATE_EXTENSION = "cantCreateExtension"
    INVALID_ATTRIBUTE_VALUE = "invalidAttributeValue"
    MISSING_ATTRIBUTE = "missingAttribute"
    UNEXPECTED_ATTRIBUTE = "unknownAttribute"
    DUPLICATE_ATTRIBUTE = "duplicateAttribute"
    TEXT_NOT_ALLOWED = "textNotAllowed"
    MISSING_REQUIRED_CONTENT = "missingRequiredContent"
    INVALID_URI = "invalidUri"
    INVALID_ROOT_ELEMENT = "invalidRootElement"
    UNDECLARED_NAMESPACE = "undeclaredNamespace"
    MALFORMED_XML = "malformedXml"
    UNKNOWN_EXTENSION_TYPE = "cantLoadExtensionClass"
    MISSING_NAMESPACE_DESCRIPTION = "missingNamespaceDescription"


class ExtensionError(ValueError):
    """
    Base exception for all errors raised when extension data does not match
    the declared model.

    .. attribute:: condition

       The :class:`ErrorCondition` member describing the error.

    .. attribute:: internal_reason

       Free-form text with details, may be :data:`None`.
    """

    def __init__(self, condition, internal_reason=None):
        super().__init__(format_error_text(condition, internal_reason))
        self.condition = condition
        self.internal_reason = internal_reason


class ParseError(ExtensionError):
    """
    An :class:`ExtensionError` raised while parsing a document, annotated
    with the location in the input.

    .. attribute:: line

       The line number, or :data:`None` if the event source offers no
       location information.

    .. attribute:: column

       The column number, or :data:`None`.

    .. attribute:: element

       The qualified name of the innermost open element, or :data:`None`.

    .. automethod:: from_error
    """

    def __init__(self, condition, internal_reason=None, *,
                 line=None, column=None, element=None):
        super().__init__(condition, internal_reason)
        self.line = line
        self.column = column
        self.element = element

    @classmethod
    def from_error(cls, exc, *, line=None, column=None, element=None):
        """
        Create a :class:`ParseError` from the :class:`ExtensionError` `exc`,
        adding location information.
        """
        return cls(
            exc.condition,
            exc.internal_reason,
            line=line,
            column=column,
            element=element,
        )

    def __str__(self):
        text = format_error_text(self.condition, self.internal_reason)
        location = []
        if self.line is not None:
            location.append("Line {}".format(self.line))
        if self.column is not None:
            location.append("Column {}".format(self.column))
        if self.element is not None:
            location.append("element {}".format(self.element))
        if location:
            return "[{}] {}".format(", ".join(location), text)
        return text
