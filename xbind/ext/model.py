########################################################################
# File name: model.py
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
Extensions and extension points. See :mod:`xbind.ext` for the documentation.
"""
import abc
import io
import logging

from .. import errors, structs
from ..attrs import AttributeGenerator, AttributeHelper
from ..fragment import Fragment
from ..parser import ElementHandler, XMLParser
from ..xml import XMLWriter
from .profile import ExtensionDescription


logger = logging.getLogger(__name__)


def _describe_tag(namespace, local_name):
    if namespace is not None and namespace.uri:
        return "{}:{}".format(namespace.uri, local_name)
    return local_name


class Extension(metaclass=abc.ABCMeta):
    """
    Interface of everything which can be stored in an
    :class:`ExtensionPoint`.

    .. automethod:: generate

    .. automethod:: get_handler
    """

    @abc.abstractmethod
    def generate(self, writer, profile):
        """
        Write the extension as XML to the :class:`~xbind.xml.XMLWriter`
        `writer`.
        """

    @abc.abstractmethod
    def get_handler(self, profile, namespace_uri, local_name, attrs):
        """
        Return the :class:`~xbind.parser.ElementHandler` which parses the
        element `local_name` in `namespace_uri` into this extension.
        """


class ValidatingExtension(metaclass=abc.ABCMeta):
    """
    Mixin for extensions which need to check their consistency with the
    extension point containing them.

    .. automethod:: validate_in_context
    """

    @abc.abstractmethod
    def validate_in_context(self, owner):
        """
        Check the extension against its `owner`, after the owner has been
        parsed completely. Raise :class:`~xbind.errors.ExtensionError` if
        the check fails.
        """


class ExtensionVisitor(metaclass=abc.ABCMeta):
    """
    Visitor for trees of extensions, see :meth:`ExtensionPoint.visit`.

    .. automethod:: visit

    .. automethod:: visit_complete
    """

    @abc.abstractmethod
    def visit(self, parent, extension):
        """
        Visit `extension`, which is contained in `parent` (:data:`None` for
        the extension point the traversal started at).

        For extension points, return false to skip their children.
        """

    def visit_complete(self, point):
        """
        Called after `point` and (unless skipped) its children have been
        visited.
        """


class AbstractExtension(Extension):
    """
    Base class for extensions represented by a single element, whose
    attributes and text content are mapped to python attributes.

    Subclasses declare the element they represent and its defaults for the
    :class:`~.ExtensionDescription` as class attributes:

    .. attribute:: NAMESPACE

       :class:`~xbind.structs.Namespace` of the element.

    .. attribute:: LOCAL_NAME

       Local name of the element, or ``"*"`` if the class handles any
       element of the namespace. In that case, :attr:`local_name` is set to
       the actual name when an element is parsed.

    .. attribute:: REQUIRED

    .. attribute:: REPEATABLE

    .. attribute:: AGGREGATE

    .. attribute:: ARBITRARY_XML

    .. attribute:: MIXED_CONTENT

    They implement :meth:`consume_attributes` and :meth:`put_attributes`.

    If the element occurs again in a container which declares it as
    aggregate, the attributes of the new occurrence are applied on top of
    the attributes seen before, so that :meth:`consume_attributes` sees the
    union and the last occurrence wins for attributes given more than once.

    .. automethod:: consume_attributes

    .. automethod:: put_attributes

    .. automethod:: validate

    .. autoattribute:: immutable
    """

    NAMESPACE = None
    LOCAL_NAME = None
    REQUIRED = False
    REPEATABLE = False
    AGGREGATE = False
    ARBITRARY_XML = False
    MIXED_CONTENT = False

    def __init__(self, *, namespace=None, local_name=None):
        super().__init__()
        cls = type(self)
        self.namespace = namespace if namespace is not None else cls.NAMESPACE
        self.local_name = (local_name if local_name is not None
                           else cls.LOCAL_NAME)
        self._immutable = False
        self._parsed_attributes = None

    @property
    def immutable(self):
        """
        Whether the extension may be modified. Immutable extension points
        reject changes to their extensions with :class:`RuntimeError`.
        """
        return self._immutable

    def set_immutable(self, immutable):
        self._immutable = bool(immutable)

    def throw_if_immutable(self):
        if self._immutable:
            raise RuntimeError("{} is immutable".format(
                type(self).__qualname__
            ))

    def consume_attributes(self, helper):
        """
        Take the attribute values and text content from the
        :class:`~xbind.attrs.AttributeHelper` `helper`. Attributes which are
        not consumed are an error.

        The default implementation consumes nothing.
        """

    def put_attributes(self, gen):
        """
        Put the attributes and text content into the
        :class:`~xbind.attrs.AttributeGenerator` `gen`.

        The default implementation puts nothing.
        """

    def validate(self):
        """
        Check the extension after it has been parsed. Raise
        :class:`~xbind.errors.ExtensionError` on failure.
        """

    def _take_element_name(self, namespace_uri, local_name):
        if type(self).LOCAL_NAME == "*":
            self.local_name = local_name
        if self.namespace is None and namespace_uri:
            self.namespace = structs.Namespace(None, namespace_uri)

    def get_handler(self, profile, namespace_uri, local_name, attrs):
        self._take_element_name(namespace_uri, local_name)
        return ExtensionElementHandler(self, profile)

    def generate(self, writer, profile):
        gen = AttributeGenerator()
        self.put_attributes(gen)
        writer.simpleElement(self.namespace, self.local_name,
                             gen.emitted(), gen.content)

    def __repr__(self):
        return "<{}.{} {}>".format(
            type(self).__module__,
            type(self).__qualname__,
            _describe_tag(self.namespace, self.local_name),
        )


class ExtensionElementHandler(ElementHandler):
    """
    Handler for the element of an :class:`AbstractExtension`.

    Attributes are collected while the element is open. When the element is
    closed, they are handed to
    :meth:`~AbstractExtension.consume_attributes` together with the text
    content, and the extension is validated.
    """

    def __init__(self, extension, profile):
        super().__init__()
        self.extension = extension
        self.profile = profile
        self.attributes = AttributeHelper(
            inherited=extension._parsed_attributes
        )

    def process_attribute(self, namespace_uri, localname, value):
        self.attributes.add(namespace_uri, localname, value)

    def _consume(self):
        helper = self.attributes
        if self.value is not None and not self.mixed_content:
            helper.content = self.value
        snapshot = helper.snapshot()
        self.extension.consume_attributes(helper)
        helper.assert_all_consumed()
        self.extension._parsed_attributes = snapshot

    def process_end_element(self):
        self._consume()
        self.extension.validate()


class ExtensionState:
    """
    The extensions and unrecognized XML of one record. All views of the
    record (see :class:`ExtensionPoint`) share one instance.

    .. attribute:: non_repeating

       :class:`dict` mapping extension types to instances.

    .. attribute:: repeating

       :class:`dict` mapping extension types to lists of instances.

    .. attribute:: fragment

       The :class:`~xbind.fragment.Fragment` with unrecognized XML.

    .. attribute:: manifest

       The :class:`~.ExtensionManifest` used for the last parse, or
       :data:`None`.
    """

    __slots__ = ("non_repeating", "repeating", "fragment", "manifest")

    def __init__(self):
        super().__init__()
        self.non_repeating = {}
        self.repeating = {}
        self.fragment = Fragment()
        self.manifest = None

    def assign(self, other):
        """
        Take over the contents of the :class:`ExtensionState` `other`.
        """
        self.non_repeating = other.non_repeating
        self.repeating = other.repeating
        self.fragment = other.fragment
        self.manifest = other.manifest


class ExtensionPoint(AbstractExtension):
    """
    An extension which contains other extensions.

    :param source: Another extension point whose state this object shares.

    Which extensions an extension point accepts is declared in an
    :class:`~.ExtensionProfile`, from the classmethod
    :meth:`declare_extensions`. Child elements which are not declared are
    kept in the :attr:`fragment` if the profile allows arbitrary XML for
    the type and rejected otherwise.

    Non-repeatable extensions are stored by type, at most one per type;
    repeatable extensions are stored in a list per type. Insertion order is
    kept and used for generation.

    An extension point created with `source` is a view on the same record:
    changes through either object are visible through both. This is used to
    look at a generic record through a more specific type (see
    :mod:`xbind.ext.adapt`).

    .. attribute:: ADAPTABLE

       If set to true in the class body, the type is a generic base whose
       instances can hold the extensions of its subclasses when the profile
       is auto-extending.

    Declaring extensions:

    .. automethod:: declare_extensions

    Accessing extensions:

    .. automethod:: get_extension

    .. automethod:: get_extensions

    .. automethod:: get_repeating_extension

    .. automethod:: get_repeating_extensions

    .. automethod:: add_extension

    .. automethod:: set_extension

    .. automethod:: add_repeating_extension

    .. automethod:: remove_extension

    .. automethod:: remove_repeating_extension

    .. autoattribute:: fragment

    Parsing and generating:

    .. automethod:: parse

    .. automethod:: generate

    .. automethod:: generate_root

    .. automethod:: generate_extensions

    .. automethod:: generate_cumulative_fragment

    .. automethod:: parse_cumulative_fragment

    Validation and traversal:

    .. automethod:: check_required_extensions

    .. automethod:: visit

    .. automethod:: visit_children

    .. automethod:: visit_child
    """

    ADAPTABLE = False

    def __init__(self, source=None, **kwargs):
        super().__init__(**kwargs)
        if source is not None:
            self._state = source._state
            if self.namespace is None:
                self.namespace = source.namespace
            if self.local_name is None:
                self.local_name = source.local_name
        else:
            self._state = ExtensionState()

    @classmethod
    def declare_extensions(cls, profile):
        """
        Declare the extensions of this type on the
        :class:`~.ExtensionProfile` `profile`. Extension points composed of
        other extensible objects also delegate to their declarations here.

        Called at most once per type and profile, through
        :meth:`~.ExtensionProfile.add_declarations`. The default
        implementation declares nothing.
        """

    def shares_state_with(self, other):
        return self._state is other._state

    @property
    def fragment(self):
        """
        The :class:`~xbind.fragment.Fragment` holding unrecognized XML.
        """
        return self._state.fragment

    @fragment.setter
    def fragment(self, value):
        self.throw_if_immutable()
        self._state.fragment = value

    def set_immutable(self, immutable):
        super().set_immutable(immutable)
        for extension in self.get_extensions():
            extension.set_immutable(immutable)
        for extensions in self._state.repeating.values():
            for extension in extensions:
                extension.set_immutable(immutable)

    def _description_for(self, type_):
        manifest = self._state.manifest
        if manifest is not None:
            for description in manifest.supported.values():
                if description.type_ is type_:
                    return description
        return ExtensionDescription.for_type(type_)

    def get_extension(self, type_):
        """
        Return the non-repeatable extension of type `type_`, or
        :data:`None`.
        """
        return self._state.non_repeating.get(type_)

    def get_extensions(self):
        """
        Return a list of all non-repeatable extensions, in insertion order.
        """
        return list(self._state.non_repeating.values())

    def get_repeating_extension(self, type_):
        """
        Return the list of repeatable extensions of type `type_`.

        The list is created on first access and the same list is returned
        afterwards; appending to it adds extensions.
        """
        return self._state.repeating.setdefault(type_, [])

    def get_repeating_extensions(self):
        """
        Return a list of all non-empty lists of repeatable extensions, in
        insertion order of their types.
        """
        return [
            extensions
            for extensions in self._state.repeating.values()
            if extensions
        ]

    def add_extension(self, extension):
        """
        Add `extension`. Repeatable extensions are appended to their list;
        an aggregate extension replaces the one present.

        :raises xbind.errors.ExtensionError: with
            :attr:`~.ErrorCondition.DUPLICATE_EXTENSION` if a non-repeatable,
            non-aggregate extension of the same type is present already.
        """
        self.throw_if_immutable()
        type_ = type(extension)
        description = self._description_for(type_)
        if description.repeatable:
            self.add_repeating_extension(extension)
            return
        if type_ in self._state.non_repeating and not description.aggregate:
            raise errors.ExtensionError(
                errors.ErrorCondition.DUPLICATE_EXTENSION,
                "Duplicate extension element {}".format(
                    _describe_tag(extension.namespace, extension.local_name)
                ),
            )
        self._state.non_repeating[type_] = extension

    def set_extension(self, extension):
        """
        Set `extension` as the non-repeatable extension of its type,
        replacing any previous one.
        """
        self.throw_if_immutable()
        self._state.non_repeating[type(extension)] = extension

    def add_repeating_extension(self, extension):
        """
        Append `extension` to the list of its type.
        """
        self.throw_if_immutable()
        self.get_repeating_extension(type(extension)).append(extension)

    def remove_extension(self, extension):
        """
        Remove an extension.

        If `extension` is a type, all extensions of that type are removed.
        Otherwise, the given instance is removed.
        """
        self.throw_if_immutable()
        if isinstance(extension, type):
            self._state.non_repeating.pop(extension, None)
            self._state.repeating.pop(extension, None)
            return
        type_ = type(extension)
        if self._state.non_repeating.get(type_) is extension:
            del self._state.non_repeating[type_]
            return
        self.remove_repeating_extension(extension)

    def remove_repeating_extension(self, extension):
        """
        Remove the instance `extension` from the list of its type, if it is
        present.
        """
        self.throw_if_immutable()
        extensions = self._state.repeating.get(type(extension), [])
        for i, item in enumerate(extensions):
            if item is extension:
                del extensions[i]
                break

    def check_required_extensions(self, manifest):
        """
        Raise :class:`~xbind.errors.ExtensionError` with
        :attr:`~.ErrorCondition.MISSING_REQUIRED_EXTENSION` if an extension
        declared as required in `manifest` is absent.
        """
        for description in manifest.required_descriptions():
            if description.repeatable:
                present = bool(self._state.repeating.get(description.type_))
            else:
                present = description.type_ in self._state.non_repeating
            if not present:
                raise errors.ExtensionError(
                    errors.ErrorCondition.MISSING_REQUIRED_EXTENSION,
                    "Required extension element {} not found.".format(
                        _describe_tag(description.namespace,
                                      description.local_name)
                    ),
                )

    def validate_extensions(self):
        """
        Call :meth:`~ValidatingExtension.validate_in_context` of all
        contained :class:`ValidatingExtension` objects.
        """
        for extension in self._iter_extensions():
            if isinstance(extension, ValidatingExtension):
                extension.validate_in_context(self)

    def _iter_extensions(self):
        yield from list(self._state.non_repeating.values())
        for extensions in list(self._state.repeating.values()):
            yield from list(extensions)

    def get_extension_handler(self, profile, owner_type, namespace_uri,
                              local_name, attrs):
        """
        Return the handler for the child element `local_name` in
        `namespace_uri` if it is declared for `owner_type`, or :data:`None`.

        A new extension object is created through the profile and added to
        this extension point, unless the extension is declared as aggregate
        and an instance is present already, in which case that instance is
        parsed into again.
        """
        manifest = profile.get_manifest(owner_type)
        if manifest is None:
            return None
        description = manifest.lookup(namespace_uri, local_name)
        if description is None:
            return None

        extension = None
        if description.aggregate and not description.repeatable:
            extension = self.get_extension(description.type_)

        if extension is None:
            try:
                extension = profile.create_extension(description)
            except Exception as exc:
                logger.debug("factory for %r failed", description,
                             exc_info=True)
                raise errors.ExtensionError(
                    errors.ErrorCondition.CANNOT_CREATE_EXTENSION,
                    "Unable to create extension {}: {}".format(
                        _describe_tag(description.namespace,
                                      description.local_name),
                        exc,
                    ),
                ) from exc

            if description.repeatable:
                self.add_repeating_extension(extension)
            elif description.type_ in self._state.non_repeating:
                raise errors.ExtensionError(
                    errors.ErrorCondition.DUPLICATE_EXTENSION,
                    "Duplicate extension element {}".format(
                        _describe_tag(
                            structs.Namespace(None, namespace_uri),
                            local_name,
                        )
                    ),
                )
            else:
                self._state.non_repeating[description.type_] = extension

        return extension.get_handler(profile, namespace_uri, local_name,
                                     attrs)

    def get_handler(self, profile, namespace_uri, local_name, attrs):
        self._take_element_name(namespace_uri, local_name)
        return ExtensionPointHandler(self, profile)

    def parse(self, profile, *, text=None, stream=None, events=None):
        """
        Parse a document whose root element is this extension point.

        The declarations of this type are imported into `profile` first.
        See :meth:`~xbind.parser.XMLParser.parse` for the sources.
        """
        profile.add_declarations(type(self))
        handler = ExtensionPointHandler(self, profile)
        root_name = self.local_name
        if root_name == "*":
            root_name = None
        root_namespace = self.namespace.uri if self.namespace else None
        XMLParser().parse(handler, root_namespace, root_name,
                          text=text, stream=stream, events=events)
        if root_name is None:
            self.local_name = handler.localname
            if handler.namespace_uri and self.namespace is None:
                self.namespace = structs.Namespace(None,
                                                   handler.namespace_uri)

    def _generate(self, writer, profile, ns_decls):
        gen = AttributeGenerator()
        self.put_attributes(gen)
        self.fragment.start_element(writer, self.namespace, self.local_name,
                                    gen.emitted(), ns_decls)
        if gen.content is not None:
            writer.characters(gen.content)
        self.generate_extensions(writer, profile)
        self.fragment.end_element(writer)

    def generate(self, writer, profile):
        """
        Write the element of this extension point: attributes, namespace
        declarations of the fragment, ``xml:lang``/``xml:base``, the
        extensions and the unrecognized XML.
        """
        self._generate(writer, profile, ())

    def generate_root(self, writer, profile):
        """
        Like :meth:`generate`, but additionally declare all namespaces which
        may be used inside this extension point (see
        :meth:`~.ExtensionProfile.namespaces_in_use`) on the element.
        """
        profile.add_declarations(type(self))
        own = self.namespace
        bound = {}
        decls = []
        for namespace in profile.namespaces_in_use(type(self)):
            if namespace.alias in bound:
                continue
            if namespace.alias is None:
                continue
            if (own is not None and own.alias == namespace.alias and
                    own.uri != namespace.uri):
                continue
            bound[namespace.alias] = namespace.uri
            decls.append(namespace)
        self._generate(writer, profile, decls)

    def generate_extensions(self, writer, profile):
        """
        Write the contained extensions: non-repeatable extensions first,
        then each group of repeatable extensions (marked with
        :meth:`~xbind.xml.XMLWriter.startRepeatingElement`), then the
        unrecognized XML.
        """
        for extension in self._state.non_repeating.values():
            extension.generate(writer, profile)
        for extensions in self._state.repeating.values():
            if not extensions:
                continue
            writer.startRepeatingElement()
            for extension in extensions:
                extension.generate(writer, profile)
            writer.endRepeatingElement()
        writer.innerXml(self.fragment.raw_xml)

    def generate_cumulative_fragment(self, profile):
        """
        Return a new :class:`~xbind.fragment.Fragment` holding all
        extensions and the unrecognized XML of this extension point as
        serialized XML.
        """
        profile.add_declarations(type(self))
        decls = list(self.fragment.namespaces)
        aliases = {namespace.alias for namespace in decls}
        for namespace in profile.namespaces_in_use(type(self)):
            if namespace.alias not in aliases:
                aliases.add(namespace.alias)
                decls.append(namespace)

        buf = io.StringIO()
        writer = XMLWriter(buf)
        writer.startElement(None, "cumulative", ns_decls=decls)
        writer.flush()
        start = buf.tell()
        self.generate_extensions(writer, profile)
        writer.flush()
        end = buf.tell()
        writer.endElement()

        return Fragment(
            raw_xml=buf.getvalue()[start:end],
            namespaces=decls,
            lang=self.fragment.lang,
            base=self.fragment.base,
        )

    def parse_cumulative_fragment(self, fragment, profile, owner_type=None):
        """
        Replace the extensions and unrecognized XML of this extension point
        by those parsed from `fragment` (see
        :meth:`generate_cumulative_fragment`) according to the declarations
        of `owner_type` (default: the type of this object).
        """
        self.throw_if_immutable()
        if owner_type is None:
            owner_type = type(self)
        profile.add_declarations(owner_type)

        # the shared state is replaced only after a successful parse
        state = self._state
        self._state = ExtensionState()
        try:
            handler = CumulativeFragmentHandler(self, profile, owner_type)
            XMLParser().parse(handler, text=fragment.to_standalone(
                name="cumulative"
            ))
        finally:
            parsed, self._state = self._state, state

        parsed.fragment.lang = fragment.lang
        parsed.fragment.base = fragment.base
        state.assign(parsed)

    def visit(self, visitor, parent=None):
        """
        Traverse this extension point and its extensions depth-first with
        the :class:`ExtensionVisitor` `visitor`.
        """
        if visitor.visit(parent, self):
            self.visit_children(visitor)
        visitor.visit_complete(self)

    def visit_children(self, visitor):
        """
        Visit all extensions of this extension point, in generation order.

        Subclasses may override this to present additional (synthetic)
        children, passing them to :meth:`visit_child`.
        """
        for extension in self._iter_extensions():
            self.visit_child(visitor, extension)

    def visit_child(self, visitor, extension):
        if isinstance(extension, ExtensionPoint):
            extension.visit(visitor, self)
        else:
            visitor.visit(self, extension)


class ExtensionPointHandler(ExtensionElementHandler):
    """
    Handler for the element of an :class:`ExtensionPoint`.

    Child elements are looked up in the manifest of `owner_type` (default:
    the type of the extension point). Unrecognized children are kept in the
    fragment of the extension point if the manifest (and the profile)
    allows arbitrary XML.

    When the element is closed, the attributes are consumed, the presence
    of required extensions is checked and the extensions are validated.
    """

    def __init__(self, point, profile, owner_type=None):
        super().__init__(point, profile)
        if owner_type is None:
            owner_type = type(point)
        self.owner_type = owner_type
        self.manifest = profile.get_manifest(owner_type)
        point._state.manifest = self.manifest
        if (self.manifest is not None and
                self.manifest.arbitrary_xml and
                profile.allows_arbitrary_xml):
            self.init_fragment(
                point.fragment,
                mixed_content=self.manifest.mixed_content,
                full_text_index=self.manifest.full_text_index,
            )

    def get_child_handler(self, namespace_uri, localname, attrs):
        handler = self.extension.get_extension_handler(
            self.profile,
            self.owner_type,
            namespace_uri,
            localname,
            attrs,
        )
        if handler is not None:
            return handler
        return super().get_child_handler(namespace_uri, localname, attrs)

    def _validate(self):
        point = self.extension
        if self.manifest is not None:
            point.check_required_extensions(self.manifest)
        point.validate_extensions()

    def process_end_element(self):
        fragment = self.extension.fragment
        if self.own_lang is not None:
            fragment.lang = self.own_lang
        if self.own_base is not None:
            fragment.base = self.own_base
        self._consume()
        self._validate()
        self.extension.validate()


class CumulativeFragmentHandler(ExtensionPointHandler):
    """
    Handler for the wrapper element of a cumulative fragment. Only the
    children are processed; the wrapper has no attributes of its own.
    """

    def process_end_element(self):
        ElementHandler.process_end_element(self)
        self._validate()
