########################################################################
# File name: adapt.py
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
:mod:`~xbind.ext.adapt` --- Views of generic records as specific types
######################################################################

A document is often parsed into a generic extension point type first (say,
an ``Entry``), and only its content tells which more specific type (say, an
``EventEntry``) it really is. The :class:`AdaptorRegistry` maps such kind
markers to view types and builds the view: an instance of the specific type
which shares its state with the generic object, with the extensions
re-interpreted according to the declarations of the specific type.

The generic type usually sets ``ADAPTABLE = True`` and is used with an
auto-extending :class:`~.ExtensionProfile`, so that the extensions of the
specific types survive the generic parse as typed extensions instead of
unrecognized XML.

.. autoclass:: AdaptorRegistry
"""
import logging

from ..attrs import AttributeHelper


logger = logging.getLogger(__name__)


class AdaptorRegistry:
    """
    Registry of view types by kind.

    :param kind_of: Function which returns an iterable of kind markers for
        an :class:`~.ExtensionPoint`. Kind markers can be any hashable
        objects, for example the term of an ``atom:category`` element.

    .. automethod:: register

    .. automethod:: unregister

    .. automethod:: select

    .. automethod:: adapt
    """

    def __init__(self, kind_of):
        super().__init__()
        self._kind_of = kind_of
        self._views = {}

    def register(self, kind, view_type):
        """
        Use `view_type` for extension points of kind `kind`.

        :raises ValueError: if a different type is registered for `kind`
            already.
        """
        existing = self._views.get(kind)
        if existing is not None and existing is not view_type:
            raise ValueError(
                "kind {!r} is already registered for {}".format(
                    kind, existing.__qualname__,
                )
            )
        self._views[kind] = view_type

    def unregister(self, kind):
        del self._views[kind]

    def select(self, point):
        """
        Return the view type for `point`, or :data:`None` if none of its
        kinds is registered.

        If several kinds match, the most specific view type wins: a type is
        skipped if another candidate is a subclass of it. Among unrelated
        candidates, the first kind reported by the `kind_of` function wins.
        """
        candidates = []
        for kind in self._kind_of(point):
            view_type = self._views.get(kind)
            if view_type is not None and view_type not in candidates:
                candidates.append(view_type)

        for candidate in candidates:
            if not any(other is not candidate and issubclass(other, candidate)
                       for other in candidates):
                return candidate
        return None

    def adapt(self, point, profile):
        """
        Return a view of `point` as its most specific registered type, or
        :data:`None`.

        The declarations of the view type are added to `profile`. All
        extensions and the unrecognized XML of `point` are serialized and
        parsed again according to the declarations of the view type, so
        that elements the generic type did not know become typed
        extensions. The attributes parsed into `point` are consumed by the
        view as well. The view and `point` share their state afterwards.
        """
        view_type = self.select(point)
        if view_type is None:
            return None

        logger.debug("adapting %r to %s", point, view_type.__qualname__)
        profile.add_declarations(view_type)
        fragment = point.generate_cumulative_fragment(profile)
        view = view_type(source=point)
        if point._parsed_attributes is not None:
            view._parsed_attributes = point._parsed_attributes
            view.consume_attributes(
                AttributeHelper(inherited=point._parsed_attributes)
            )
        view.parse_cumulative_fragment(fragment, profile, view_type)
        return view
