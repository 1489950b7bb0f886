########################################################################
# File name: profile.py
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
import logging
import threading

import sortedcollections

from .. import structs


logger = logging.getLogger(__name__)


class ExtensionDescription:
    """
    Describe how an extension type appears inside an extension point.

    :param type_: The extension type.
    :param namespace: Namespace of the extension element.
    :type namespace: :class:`~xbind.structs.Namespace`
    :param local_name: Local name of the extension element. ``"*"`` matches
        any element in `namespace`.
    :param required: The extension must be present when the owning element
        is closed.
    :param repeatable: The extension may occur any number of times.
    :param aggregate: Further occurrences of the (non-repeatable) extension
        are merged into the first instance instead of being rejected.
    :param arbitrary_xml: The extension element itself keeps unrecognized
        child elements.
    :param mixed_content: Together with `arbitrary_xml`: text between the
        unrecognized children is kept as well.
    :param factory: Callable without arguments creating a new instance of
        the extension. Defaults to `type_`.

    Descriptions are immutable. They order by namespace URI and local name.

    .. automethod:: for_type

    .. automethod:: replace
    """

    __slots__ = (
        "_type", "_namespace", "_local_name", "_required", "_repeatable",
        "_aggregate", "_arbitrary_xml", "_mixed_content", "_factory",
    )

    def __init__(self, type_, namespace, local_name, *,
                 required=False,
                 repeatable=False,
                 aggregate=False,
                 arbitrary_xml=False,
                 mixed_content=False,
                 factory=None):
        super().__init__()
        if not local_name:
            raise ValueError("local_name must not be empty")
        if namespace is None:
            namespace = structs.Namespace(None, None)
        self._type = type_
        self._namespace = namespace
        self._local_name = local_name
        self._required = bool(required)
        self._repeatable = bool(repeatable)
        self._aggregate = bool(aggregate)
        self._arbitrary_xml = bool(arbitrary_xml)
        self._mixed_content = bool(mixed_content)
        self._factory = factory if factory is not None else type_

    @classmethod
    def for_type(cls, type_, **kwargs):
        """
        Create the description of `type_` from its class attributes
        ``NAMESPACE``, ``LOCAL_NAME``, ``REQUIRED``, ``REPEATABLE``,
        ``AGGREGATE``, ``ARBITRARY_XML`` and ``MIXED_CONTENT``. Keyword
        arguments override the class attributes.
        """
        try:
            namespace = kwargs.pop("namespace", type_.NAMESPACE)
            local_name = kwargs.pop("local_name", type_.LOCAL_NAME)
        except AttributeError:
            raise TypeError(
                "{!r} does not declare NAMESPACE and LOCAL_NAME".format(type_)
            ) from None
        settings = {
            "required": getattr(type_, "REQUIRED", False),
            "repeatable": getattr(type_, "REPEATABLE", False),
            "aggregate": getattr(type_, "AGGREGATE", False),
            "arbitrary_xml": getattr(type_, "ARBITRARY_XML", False),
            "mixed_content": getattr(type_, "MIXED_CONTENT", False),
        }
        settings.update(kwargs)
        return cls(type_, namespace, local_name, **settings)

    @property
    def type_(self):
        return self._type

    @property
    def namespace(self):
        return self._namespace

    @property
    def local_name(self):
        return self._local_name

    @property
    def tag(self):
        """
        ``(namespace_uri, local_name)`` tuple of the extension element.
        """
        return (self._namespace.uri or None, self._local_name)

    @property
    def required(self):
        return self._required

    @property
    def repeatable(self):
        return self._repeatable

    @property
    def aggregate(self):
        return self._aggregate

    @property
    def arbitrary_xml(self):
        return self._arbitrary_xml

    @property
    def mixed_content(self):
        return self._mixed_content

    @property
    def factory(self):
        return self._factory

    def replace(self, **kwargs):
        """
        Return a copy of the description with the given settings changed.
        """
        settings = {
            "required": self._required,
            "repeatable": self._repeatable,
            "aggregate": self._aggregate,
            "arbitrary_xml": self._arbitrary_xml,
            "mixed_content": self._mixed_content,
            "factory": self._factory,
        }
        type_ = kwargs.pop("type_", self._type)
        namespace = kwargs.pop("namespace", self._namespace)
        local_name = kwargs.pop("local_name", self._local_name)
        settings.update(kwargs)
        return type(self)(type_, namespace, local_name, **settings)

    def _key(self):
        return (
            self._type, self._namespace, self._local_name, self._required,
            self._repeatable, self._aggregate, self._arbitrary_xml,
            self._mixed_content,
        )

    def __eq__(self, other):
        if not isinstance(other, ExtensionDescription):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __lt__(self, other):
        if not isinstance(other, ExtensionDescription):
            return NotImplemented
        return ((self._namespace.uri or "", self._local_name) <
                (other._namespace.uri or "", other._local_name))

    def __repr__(self):
        flags = [
            name
            for name in ("required", "repeatable", "aggregate",
                         "arbitrary_xml", "mixed_content")
            if getattr(self, name)
        ]
        return "<{}.{} {} {{{}}}{} {}>".format(
            type(self).__module__,
            type(self).__qualname__,
            self._type.__qualname__,
            self._namespace.uri or "",
            self._local_name,
            ",".join(flags) or "-",
        )


class ExtensionManifest:
    """
    The extensions declared for one extension point type.

    .. attribute:: owner_type

       The extension point type this manifest belongs to.

    .. attribute:: supported

       :class:`dict` mapping ``(namespace_uri, local_name)`` tuples to
       :class:`ExtensionDescription` objects, in declaration order.

    .. attribute:: arbitrary_xml

       Whether unrecognized child elements are kept.

    .. attribute:: mixed_content

       Whether text between unrecognized child elements is kept.

    .. attribute:: full_text_index

       Whether the text of unrecognized child elements is collected for
       indexing.

    .. attribute:: subclass_manifests

       Manifests of subclasses of :attr:`owner_type`; declarations on this
       manifest are forwarded to them. A forwarded declaration does not
       replace one made on the subclass manifest itself.
    """

    def __init__(self, owner_type, base=None):
        super().__init__()
        self.owner_type = owner_type
        self.supported = {}
        self.arbitrary_xml = False
        self.mixed_content = False
        self.full_text_index = False
        self.subclass_manifests = []
        self._own_tags = set()
        if base is not None:
            self.supported.update(base.supported)
            self.arbitrary_xml = base.arbitrary_xml
            self.mixed_content = base.mixed_content
            self.full_text_index = base.full_text_index
            base.subclass_manifests.append(self)

    def add(self, description, inherited=False):
        tag = description.tag
        if inherited:
            if tag in self._own_tags:
                return
        else:
            self._own_tags.add(tag)
        self.supported[tag] = description
        for manifest in self.subclass_manifests:
            manifest.add(description, inherited=True)

    def set_arbitrary_xml(self, mixed_content=False, full_text_index=False):
        self.arbitrary_xml = True
        self.mixed_content = mixed_content
        self.full_text_index = full_text_index
        for manifest in self.subclass_manifests:
            manifest.set_arbitrary_xml(mixed_content, full_text_index)

    def lookup(self, namespace_uri, local_name):
        """
        Return the description for the element, trying an exact match first
        and the wildcard of the namespace second, or :data:`None`.
        """
        namespace_uri = namespace_uri or None
        try:
            return self.supported[namespace_uri, local_name]
        except KeyError:
            return self.supported.get((namespace_uri, "*"))

    def required_descriptions(self):
        return [
            description
            for description in self.supported.values()
            if description.required
        ]

    @property
    def namespaces(self):
        return sortedcollections.OrderedSet(
            description.namespace
            for description in self.supported.values()
            if description.namespace.uri
        )


class ExtensionProfile:
    """
    Registry of the extensions accepted by extension point types.

    :param auto_extending: Also declare extensions of subclasses on their
        adaptable base types (see :meth:`declare`).
    :param arbitrary_xml: Whether extension points may keep unrecognized
        XML at all. If false, the arbitrary XML declarations are ignored and
        every unknown element is an error.

    Extension point types register their extensions from their
    ``declare_extensions`` classmethod, which is called by
    :meth:`add_declarations` at most once per type and profile.

    Registration is thread-safe. Lookups are expected to happen only after
    the relevant declarations have been added.

    .. automethod:: add_declarations

    .. automethod:: is_declared

    .. automethod:: declare

    .. automethod:: declare_arbitrary_xml

    .. automethod:: declare_additional_namespace

    .. automethod:: get_manifest

    .. automethod:: lookup

    .. automethod:: create_extension

    .. automethod:: namespaces_in_use

    .. automethod:: get_namespace_decls
    """

    def __init__(self, *, auto_extending=False, arbitrary_xml=True):
        super().__init__()
        self.auto_extending = auto_extending
        self.allows_arbitrary_xml = arbitrary_xml
        self._lock = threading.RLock()
        self._manifests = {}
        self._declared = set()
        self._factories = {}
        self._additional_namespaces = sortedcollections.OrderedSet()
        self._namespace_decls = None

    def add_declarations(self, owner_type):
        """
        Import the declarations of `owner_type` (a type or an instance) by
        calling its ``declare_extensions`` classmethod, unless that already
        happened.
        """
        if not isinstance(owner_type, type):
            owner_type = type(owner_type)
        with self._lock:
            if owner_type in self._declared:
                return
            self._declared.add(owner_type)
            logger.debug("importing declarations of %s",
                         owner_type.__qualname__)
            try:
                owner_type.declare_extensions(self)
            except BaseException:
                self._declared.discard(owner_type)
                raise

    def is_declared(self, owner_type):
        return owner_type in self._declared

    def _get_or_create_manifest(self, owner_type):
        try:
            return self._manifests[owner_type]
        except KeyError:
            pass
        manifest = ExtensionManifest(owner_type,
                                     base=self.get_manifest(owner_type))

        # subclasses declared earlier are re-parented to the new manifest
        subclasses = [
            type_ for type_ in self._manifests
            if issubclass(type_, owner_type)
        ]
        for type_ in subclasses:
            if any(other is not type_ and issubclass(type_, other)
                   for other in subclasses):
                continue
            subclass_manifest = self._manifests[type_]
            for other in self._manifests.values():
                if (issubclass(owner_type, other.owner_type) and
                        subclass_manifest in other.subclass_manifests):
                    other.subclass_manifests.remove(subclass_manifest)
            manifest.subclass_manifests.append(subclass_manifest)

        self._manifests[owner_type] = manifest
        return manifest

    def get_manifest(self, owner_type):
        """
        Return the :class:`ExtensionManifest` for `owner_type`, falling back
        to the nearest base class with a manifest, or :data:`None`.
        """
        for type_ in owner_type.__mro__:
            try:
                return self._manifests[type_]
            except KeyError:
                pass
        return None

    def manifests(self):
        """
        Return a list of all ``(owner_type, manifest)`` pairs.
        """
        return list(self._manifests.items())

    def declare(self, owner_type, description):
        """
        Declare that instances of `owner_type` accept the extension described
        by `description`.

        :param owner_type: The extension point type.
        :param description: Either an :class:`ExtensionDescription` or an
            extension type, whose description is then taken from its class
            attributes (see :meth:`ExtensionDescription.for_type`).

        The declaration is forwarded to the manifests of all subclasses of
        `owner_type`, unless a subclass declared the same element itself;
        subclass manifests created later start with a copy of the
        declarations. If the extension type has extensions of its
        own (it has a ``declare_extensions`` classmethod), those are imported
        as well. If the description allows arbitrary XML, it is declared for
        the extension type.

        With :attr:`auto_extending`, the declaration is also made, with the
        requirement dropped, on each base class of `owner_type` which sets
        ``ADAPTABLE = True`` in its class body.
        """
        if isinstance(description, type):
            description = ExtensionDescription.for_type(description)

        with self._lock:
            manifest = self._get_or_create_manifest(owner_type)
            self._factories[description.type_] = description.factory
            self._namespace_decls = None

            if self.auto_extending:
                relaxed = description.replace(required=False)
                for base in owner_type.__mro__[1:]:
                    if base.__dict__.get("ADAPTABLE", False):
                        self._get_or_create_manifest(base).add(relaxed)

            # after the bases, which forward the relaxed copy to us
            manifest.add(description)

            if description.arbitrary_xml:
                self.declare_arbitrary_xml(
                    description.type_,
                    mixed_content=description.mixed_content,
                )

            if hasattr(description.type_, "declare_extensions"):
                self.add_declarations(description.type_)

    def declare_arbitrary_xml(self, owner_type, mixed_content=False,
                              full_text_index=False):
        """
        Declare that instances of `owner_type` keep unrecognized child
        elements (and, with `mixed_content`, text).
        """
        with self._lock:
            self._get_or_create_manifest(owner_type).set_arbitrary_xml(
                mixed_content=mixed_content,
                full_text_index=full_text_index,
            )

    def declare_additional_namespace(self, namespace):
        """
        Add `namespace` to the namespaces declared on generated documents.
        """
        with self._lock:
            self._additional_namespaces.add(namespace)
            self._namespace_decls = None

    def lookup(self, owner_type, namespace_uri, local_name):
        """
        Return the :class:`ExtensionDescription` for the element inside
        an instance of `owner_type`, or :data:`None`.
        """
        manifest = self.get_manifest(owner_type)
        if manifest is None:
            return None
        return manifest.lookup(namespace_uri, local_name)

    def create_extension(self, description):
        """
        Create a new instance of the extension described by `description`.
        """
        factory = self._factories.get(description.type_,
                                      description.factory)
        return factory()

    def namespaces_in_use(self, owner_type):
        """
        Return the namespaces of all extensions which can occur, directly or
        nested, inside an instance of `owner_type`, followed by the
        additional namespaces.

        :rtype: :class:`sortedcollections.OrderedSet` of
            :class:`~xbind.structs.Namespace`
        """
        result = sortedcollections.OrderedSet()
        seen = set()
        pending = [owner_type]
        while pending:
            type_ = pending.pop(0)
            if type_ in seen:
                continue
            seen.add(type_)
            manifest = self.get_manifest(type_)
            if manifest is None:
                continue
            result |= manifest.namespaces
            pending.extend(
                description.type_
                for description in manifest.supported.values()
            )
        result |= self._additional_namespaces
        return result

    def get_namespace_decls(self):
        """
        Return the namespaces of all declared extensions and the additional
        namespaces. The result is cached until the next declaration.
        """
        with self._lock:
            if self._namespace_decls is None:
                result = sortedcollections.OrderedSet()
                for manifest in self._manifests.values():
                    result |= manifest.namespaces
                result |= self._additional_namespaces
                self._namespace_decls = result
            return self._namespace_decls
