"""
Collection - Observable Ordered List of Models

A Collection keeps an ordered list of models, announces membership changes
(`add`, `remove`, `reset`, `sort`) and re-triggers every event its models
fire, so listeners on the collection also see `change` on any element.

When linked into a parent model the collection mirrors the parent's raw list:
membership changes and element changes are written back into that same list
object, and replacing the parent's value resets the collection.
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from ..app.configuration import get_config
from .events import ABSORB_PRIORITY, Events, PROPAGATION_PRIORITY
from .mixins import HierarchyMixin, PersistenceMixin, relational_action
from .model import Model
from .utils import unique_id

logger = logging.getLogger(__name__)


class Collection(Events, HierarchyMixin, PersistenceMixin):
    """Observable ordered list of models, optionally linked into a hierarchy."""

    model = Model

    # Attribute name or key function; None keeps insertion order
    comparator: Union[str, Callable[[Model], Any], None] = None

    def __init__(self, models=None, *, parent=None, model=None, comparator=None, **options):
        self.cid = unique_id("c")
        if model is not None:
            self.model = model
        if comparator is not None:
            self.comparator = comparator
        self.models: List[Model] = []

        if parent is not None:
            self.link_parent(parent, models)

        # Elements built here inherit the parent without being announced
        if models is not None:
            self.reset(models, silent=True, parent=self.parent)

        self.initialize(models, **options)

    def initialize(self, models=None, **options) -> None:
        """Hook for subclasses; runs after linking and the initial reset."""
        pass

    @property
    def namespace(self) -> str:
        return self._namespace or self.model._namespace or self.model.__name__

    def get_backend(self):
        """Backend for this collection, falling back to its model class's."""
        if self.backend is not None:
            return self.backend
        return self.model.backend

    # Membership

    def add(self, models, at: Optional[int] = None, merge: bool = False,
            silent: bool = False, **options):
        """
        Add a model, raw attributes, or a list of either.

        Entries matching an existing member (same instance, id or cid) are
        skipped, or merged into that member when merge is set.
        """
        singular = not isinstance(models, (list, tuple))
        items = [models] if singular else list(models)

        added, result = [], []
        for item in items:
            if item is None:
                continue
            existing = self.get(item)
            if existing is not None:
                if merge and existing is not item:
                    attrs = item.attributes if isinstance(item, Model) else item
                    existing.set(dict(attrs), silent=silent)
                result.append(existing)
                continue
            model = self._prepare_model(item, options)
            self._add_reference(model)
            added.append(model)
            result.append(model)

        if added:
            if at is None:
                self.models.extend(added)
            else:
                self.models[at:at] = added
            sort_needed = self.comparator is not None and at is None
            if sort_needed:
                self.sort(silent=True)
            if not silent:
                for model in added:
                    self.trigger("add", model, self, options)
                if sort_needed:
                    self.trigger("sort", self, {**options, "add": True})

        if singular:
            return result[0] if result else None
        return result

    def remove(self, models, silent: bool = False, **options):
        """Remove models (instances, ids or cids); unknown entries are ignored."""
        singular = not isinstance(models, (list, tuple))
        items = [models] if singular else list(models)

        removed = []
        for item in items:
            model = self.get(item)
            if model is None:
                continue
            index = self.index_of(model)
            del self.models[index]
            removed.append(model)
            if not silent:
                self.trigger("remove", model, self, {**options, "index": index})
            self._remove_reference(model)

        if singular:
            return removed[0] if removed else None
        return removed

    def reset(self, models=None, silent: bool = False, **options) -> List[Model]:
        """Replace all members; fires a single `reset` instead of add/remove."""
        previous = self.models
        self.models = []
        for model in previous:
            self._remove_reference(model)
        self.add(models if models is not None else [], silent=True, **options)
        if not silent:
            self.trigger("reset", self, {**options, "previous_models": previous})
        return self.models

    def push(self, model, **options):
        return self.add(model, at=len(self.models), **options)

    def pop(self, **options) -> Optional[Model]:
        if not self.models:
            return None
        return self.remove(self.models[-1], **options)

    def unshift(self, model, **options):
        return self.add(model, at=0, **options)

    def shift(self, **options) -> Optional[Model]:
        if not self.models:
            return None
        return self.remove(self.models[0], **options)

    def create(self, attrs, **options) -> Model:
        """Add a new model and save it through the collection's backend."""
        model = self._prepare_model(attrs, {})
        self.add(model)
        model.save(None, **options)
        return model

    # Lookup

    def get(self, obj) -> Optional[Model]:
        """Find a member by instance, id, cid or attributes carrying an id."""
        if obj is None:
            return None
        if isinstance(obj, Model):
            for model in self.models:
                if model is obj:
                    return model
            key = obj.id
        elif isinstance(obj, Mapping):
            key = obj.get(self.model.id_attribute)
        else:
            key = obj
        if key is None:
            return None
        for model in self.models:
            if model.id == key or model.cid == key:
                return model
        return None

    def at(self, index: int) -> Model:
        return self.models[index]

    def index_of(self, model: Model) -> int:
        for index, candidate in enumerate(self.models):
            if candidate is model:
                return index
        raise ValueError(f"{model!r} is not in {self!r}")

    def where(self, **attrs) -> List[Model]:
        return [m for m in self.models if all(m.get(k) == v for k, v in attrs.items())]

    def find_where(self, **attrs) -> Optional[Model]:
        return next(iter(self.where(**attrs)), None)

    def pluck(self, attr: str) -> List[Any]:
        return [model.get(attr) for model in self.models]

    def sort(self, silent: bool = False, **options) -> "Collection":
        if self.comparator is None:
            raise ValueError("Cannot sort a collection without a comparator")
        if isinstance(self.comparator, str):
            attr = self.comparator
            key = lambda model: model.get(attr)
        else:
            key = self.comparator
        self.models.sort(key=key)
        if not silent:
            self.trigger("sort", self, options)
        return self

    def to_json(self) -> List[Dict[str, Any]]:
        return [model.to_json() for model in self.models]

    def __len__(self) -> int:
        return len(self.models)

    def __iter__(self) -> Iterator[Model]:
        return iter(list(self.models))

    def __getitem__(self, index):
        return self.models[index]

    def __contains__(self, obj) -> bool:
        return self.get(obj) is not None

    def __repr__(self):
        return f"{self.__class__.__name__}(cid={self.cid}, length={len(self.models)})"

    # Model references

    def _prepare_model(self, attrs, options: Dict[str, Any]) -> Model:
        if isinstance(attrs, Model):
            return attrs
        return self.model(attrs, collection=self, parent=options.get("parent"))

    def _add_reference(self, model: Model) -> None:
        if model.collection is None:
            model.collection = self
        model.on("all", self._on_model_event, self, PROPAGATION_PRIORITY)

    def _remove_reference(self, model: Model) -> None:
        model.off("all", self._on_model_event, self)
        if model.collection is self:
            model.collection = None
        if (get_config().detach_on_remove and self.parent is not None
                and model.parent is self.parent):
            model.unlink_parent()

    def _on_model_event(self, event: str, model=None, *args) -> None:
        if event == "destroy" and model is not None:
            self.remove(model)
        self.trigger(event, model, *args)

    # Hierarchy

    _SYNC_EVENTS = "add remove change reset"

    def _subscribe_sync(self) -> None:
        self._unsubscribe_sync()
        self.on(self._SYNC_EVENTS, self.sync_up, self, PROPAGATION_PRIORITY)
        self.on("sort", self._sync_sorted, self, PROPAGATION_PRIORITY)
        self.on("add", self._wire_model, self, ABSORB_PRIORITY)
        self.on("reset", self._wire_models, self, ABSORB_PRIORITY)

    def _unsubscribe_sync(self) -> None:
        self.off(self._SYNC_EVENTS, self.sync_up)
        self.off("sort", self._sync_sorted)
        self.off("add", self._wire_model)
        self.off("reset", self._wire_models)

    def _empty_source(self) -> list:
        return []

    def _is_empty(self) -> bool:
        return not self.models

    def _wire_model(self, model: Model, *_args) -> None:
        """Give an added element the collection's parent, unless it has one."""
        if self.parent is not None and model.parent is None:
            model.link_parent(self.parent)

    def _wire_models(self, *_args) -> None:
        for model in self.models:
            self._wire_model(model)

    def _sync_sorted(self, collection=None, options=None) -> None:
        # The add pass that sorted already projected the new order
        if options and options.get("add"):
            return
        self.sync_up()

    @relational_action
    def sync_up(self, *_args, silent: bool = False) -> None:
        """Rewrite the parent's raw list in place and announce it."""
        field = self._relation_key()
        if field is None:
            return
        if not self._verify_source(field):
            return
        serialized = self.to_json()
        del self.source[:]
        self.source.extend(serialized)
        self._bubble(field, silent)

    @relational_action
    def sync_down(self, model=None, value=None, *_args) -> None:
        """Adopt value as the new source and reset members from it."""
        self.source = value
        self.reset(value)

    # Persistence

    def _apply_fetched(self, response: Any, options: dict) -> None:
        self.reset(list(response or []), **options)


__all__ = ["Collection"]
