"""
Model - Observable Record

A Model holds a flat mapping of attributes and announces every change:
`change:<attr>` for each attribute whose value changed, then one `change`.
Declaring `related` turns raw nested values into live child nodes that stay
synchronized with this model's raw attributes in both directions.

Example:
    class Reception(Model):
        defaults = {"staff": 1}

    class Hotel(Model):
        related = {"rooms": Rooms, "reception": Reception}

    hotel = Hotel({"rooms": [...], "reception": {"staff": 2}})
    hotel.reception.set("staff", 5)
    hotel.get("reception")        # {"staff": 5}
"""

import copy
import logging
from collections.abc import Mapping
from typing import Any, ClassVar, Dict, Iterable, Optional

from ..exceptions import PersistenceError
from .events import ABSORB_PRIORITY, Events, PROPAGATION_PRIORITY
from .mixins import HierarchyMixin, PersistenceMixin, relational_action
from .utils import unique_id

logger = logging.getLogger(__name__)

_MISSING = object()


class Model(Events, HierarchyMixin, PersistenceMixin):
    """Observable record, optionally linked into a hierarchy."""

    # dict, or a method returning one; deep-copied per instance
    defaults: Any = None

    id_attribute: str = "id"

    # Attribute name -> Model/Collection subclass wrapping that raw value
    related: ClassVar[Dict[str, type]] = {}

    def __init__(self, attributes: Optional[Mapping] = None, *, parent=None,
                 collection=None, parse: bool = False, **options):
        """
        Build the model in a fixed order.

        1. Base state: attributes (with defaults) are set silently
        2. Linking: when a parent is given, `attributes` becomes `source`
        3. Auto-wiring of `related` children
        4. The user initialize() hook
        """
        self.cid = unique_id("c")
        self.attributes: Dict[str, Any] = {}
        self.changed: Dict[str, Any] = {}
        self.collection = collection
        self._previous_attributes: Dict[str, Any] = {}
        self._changing = False
        self._pending = None
        self._relations: Dict[int, str] = {}

        attrs = dict(attributes or {})
        if parse:
            attrs = self.parse(attrs) or {}
        defaults = self.defaults() if callable(self.defaults) else self.defaults
        if defaults:
            attrs = {**copy.deepcopy(defaults), **attrs}
        self.set(attrs, silent=True)
        self.changed = {}

        if parent is not None:
            self.link_parent(parent, attributes)
        self._wire_related()

        self.initialize(attributes, **options)

    def initialize(self, attributes=None, **options) -> None:
        """Hook for subclasses; runs after linking and auto-wiring."""
        pass

    # Attribute access

    @property
    def id(self):
        return self.attributes.get(self.id_attribute)

    def get(self, attr: str, default: Any = None) -> Any:
        return self.attributes.get(attr, default)

    def has(self, attr: str) -> bool:
        return self.attributes.get(attr) is not None

    def is_new(self) -> bool:
        return self.id is None

    def set(self, key, value: Any = _MISSING, **options) -> "Model":
        """
        Set one attribute (`set("a", 1)`) or several (`set({"a": 1})`).

        Options:
            silent: Apply without triggering change events
            unset: Remove the named attributes instead of assigning them
        """
        if key is None:
            return self
        if isinstance(key, Mapping):
            if value is not _MISSING:
                raise TypeError("set() takes a mapping or a key/value pair, not both")
            attrs = dict(key)
        elif isinstance(key, str):
            attrs = {key: None if value is _MISSING else value}
        else:
            raise TypeError(f"set() expects a mapping or attribute name, got {type(key).__name__}")

        if options.pop("unset", False):
            return self._apply({}, attrs, options)
        return self._apply(attrs, (), options)

    def unset(self, attr: str, **options) -> "Model":
        return self._apply({}, (attr,), options)

    def clear(self, **options) -> "Model":
        return self._apply({}, list(self.attributes), options)

    def replace(self, attrs: Optional[Mapping], **options) -> "Model":
        """Overwrite the full attribute set; keys absent from attrs are removed."""
        attrs = dict(attrs or {})
        removals = [attr for attr in self.attributes if attr not in attrs]
        return self._apply(attrs, removals, options)

    def _apply(self, updates: Dict[str, Any], removals: Iterable[str], options: Dict[str, Any]) -> "Model":
        silent = options.get("silent", False)
        changing = self._changing
        self._changing = True
        try:
            if not changing:
                self._previous_attributes = dict(self.attributes)
                self.changed = {}
            current, previous = self.attributes, self._previous_attributes

            changes = []
            for attr in removals:
                if attr in current:
                    changes.append(attr)
                    del current[attr]
                if attr in previous:
                    self.changed[attr] = None
                else:
                    self.changed.pop(attr, None)

            for attr, val in updates.items():
                if attr not in current or current[attr] != val:
                    changes.append(attr)
                if attr in previous and previous[attr] == val:
                    self.changed.pop(attr, None)
                else:
                    self.changed[attr] = val
                # Assigned even when equal: the raw object identity may differ
                current[attr] = val

            if not silent:
                if changes:
                    self._pending = options
                for attr in changes:
                    self.trigger(f"change:{attr}", self, current.get(attr), options)

            # Nested call from a change handler: the outer call fires "change"
            if changing:
                return self

            if not silent:
                while self._pending is not None:
                    pending, self._pending = self._pending, None
                    self.trigger("change", self, pending)
        finally:
            if not changing:
                self._pending = None
                self._changing = False
        return self

    def has_changed(self, attr: Optional[str] = None) -> bool:
        if attr is None:
            return bool(self.changed)
        return attr in self.changed

    def previous(self, attr: str) -> Any:
        return self._previous_attributes.get(attr)

    def previous_attributes(self) -> Dict[str, Any]:
        return dict(self._previous_attributes)

    def parse(self, response: Any) -> Any:
        return response

    def to_json(self) -> Dict[str, Any]:
        return dict(self.attributes)

    def clone(self) -> "Model":
        """Free-standing copy with its own raw data."""
        return type(self)(copy.deepcopy(self.attributes))

    # Hierarchy

    def _subscribe_sync(self) -> None:
        self.off("change", self.sync_up)
        self.on("change", self.sync_up, self, PROPAGATION_PRIORITY)

    def _unsubscribe_sync(self) -> None:
        self.off("change", self.sync_up)

    def _empty_source(self) -> Dict[str, Any]:
        return {}

    def _is_empty(self) -> bool:
        return not self.attributes

    def get_relation(self, node) -> Optional[str]:
        """Attribute name under which this model holds node, or None."""
        return self._relations.get(id(node))

    @property
    def relations(self) -> Dict[str, Any]:
        """Auto-wired children by attribute name."""
        return {name: getattr(self, name) for name in self._relations.values()}

    def _wire_related(self) -> None:
        for name, node_class in self.related.items():
            child = node_class(self.get(name), parent=self)
            setattr(self, name, child)
            self._relations[id(child)] = name
            child.persist_via_parent = True

            # The child's constructor may have applied defaults
            child.sync_up(silent=True)

            self.on(f"change:{name}", child.sync_down, child, ABSORB_PRIORITY)
            logger.debug(f"Wired {name!r} on {self!r} as {child!r}")

    @relational_action
    def sync_up(self, *_args, silent: bool = False) -> None:
        """Write this model's attributes into the parent's raw value and announce it."""
        field = self._relation_key()

        # Collection elements inherit the parent but hold no relation of their own
        if field is None:
            return

        if not self._verify_source(field):
            return
        self.source.update(self.attributes)
        self._bubble(field, silent)

    @relational_action
    def sync_down(self, model=None, value=None, *_args) -> None:
        """Adopt value as the new source and replace all attributes from it."""
        self.source = value
        self.replace(value)

    # Persistence

    def save(self, attrs: Optional[Mapping] = None, **options) -> Any:
        """
        Set attrs (if given) and persist the model.

        Options:
            success: callback(model, response, options)
            error: callback(model, exc, options); without it errors are raised
            patch: use "patch" instead of "update" for existing models
        """
        success = options.pop("success", None)
        error = options.pop("error", None)

        if attrs:
            self.set(attrs, **options)

        if self.is_new():
            method = "create"
        else:
            method = "patch" if options.get("patch") else "update"

        try:
            response = self.sync(method, self, **options)
        except PersistenceError as e:
            if error is None:
                raise
            error(self, e, options)
            return False

        if self.persist_via_parent:
            return response

        if isinstance(response, Mapping):
            server_attrs = self.parse(dict(response))
            if server_attrs:
                self.set(server_attrs, **options)
        if success:
            success(self, response, options)
        self.trigger("sync", self, response, options)
        return response

    def destroy(self, **options) -> Any:
        """Delete the model from its backend and announce the removal."""
        success = options.pop("success", None)
        error = options.pop("error", None)

        response = None
        if not self.is_new():
            try:
                response = self.sync("delete", self, **options)
            except PersistenceError as e:
                if error is None:
                    raise
                error(self, e, options)
                return False

        self.trigger("destroy", self, self.collection, options)
        if success:
            success(self, response, options)
        return response

    def _apply_fetched(self, response: Any, options: dict) -> None:
        if isinstance(response, Mapping):
            self.set(self.parse(dict(response)), **options)

    def __repr__(self):
        return f"{self.__class__.__name__}(id={self.id}, cid={self.cid})"


__all__ = ["Model"]
