"""
Resource Tracker Module

One in-memory collection of typed objects for a single schema variant, keyed
by ObjectKey. Trackers know nothing about variants; all cross-variant logic lives in
MultiVariantStore.

The simulated processes read trackers concurrently with test-driven
mutations, so every operation holds the tracker's lock. Objects are deep
copied on the way in and out; callers never share mutable state with the store.
"""

import logging
import threading
from typing import Iterator, Optional

from .errors import AlreadyExistsError, NotFoundError
from .models import GroupVersionResource, KubeObject, ObjectKey, object_key

logger = logging.getLogger(__name__)


class ObjectTracker:
    """Thread-safe keyed store of typed objects for one schema variant."""

    def __init__(self, name: str):
        self.name = name
        self._objects: dict[ObjectKey, KubeObject] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)

    def __contains__(self, key: ObjectKey) -> bool:
        with self._lock:
            return key in self._objects

    def __repr__(self) -> str:
        return f"ObjectTracker(name={self.name!r}, objects={len(self)})"

    def get(self, gvr: GroupVersionResource, namespace: str, name: str) -> KubeObject:
        """
        Return a copy of the object at the given coordinate.

        Raises:
            NotFoundError: if nothing is stored there.
        """
        key = ObjectKey(gvr, namespace, name)
        with self._lock:
            obj = self._objects.get(key)
            if obj is None:
                raise NotFoundError(
                    f"{key} not found in {self.name} tracker",
                    details={"tracker": self.name, "key": str(key)},
                )
            return obj.model_copy(deep=True)

    def add(self, obj: KubeObject) -> None:
        """
        Store a new object.

        Raises:
            AlreadyExistsError: if the object's coordinate is already taken.
        """
        key = object_key(obj)
        with self._lock:
            if key in self._objects:
                raise AlreadyExistsError(
                    f"{key} already exists in {self.name} tracker",
                    details={"tracker": self.name, "key": str(key)},
                )
            self._objects[key] = obj.model_copy(deep=True)
        logger.debug("%s tracker: added %s", self.name, key)

    def update(self, obj: KubeObject) -> None:
        """
        Replace an existing object wholesale.

        Raises:
            NotFoundError: if the object's coordinate is not stored.
        """
        key = object_key(obj)
        with self._lock:
            if key not in self._objects:
                raise NotFoundError(
                    f"cannot update {key}: not found in {self.name} tracker",
                    details={"tracker": self.name, "key": str(key)},
                )
            self._objects[key] = obj.model_copy(deep=True)
        logger.debug("%s tracker: updated %s", self.name, key)

    def delete(self, gvr: GroupVersionResource, namespace: str, name: str) -> None:
        """
        Remove the object at the given coordinate.

        Raises:
            NotFoundError: if nothing is stored there.
        """
        key = ObjectKey(gvr, namespace, name)
        with self._lock:
            if self._objects.pop(key, None) is None:
                raise NotFoundError(
                    f"cannot delete {key}: not found in {self.name} tracker",
                    details={"tracker": self.name, "key": str(key)},
                )
        logger.debug("%s tracker: deleted %s", self.name, key)

    def list(self, gvr: GroupVersionResource, namespace: Optional[str] = None) -> list[KubeObject]:
        """Return copies of every object of a resource type, optionally within one namespace."""
        with self._lock:
            return [
                obj.model_copy(deep=True)
                for key, obj in self._objects.items()
                if key.gvr == gvr and (namespace is None or key.namespace == namespace)
            ]

    def keys(self) -> Iterator[ObjectKey]:
        with self._lock:
            return iter(list(self._objects))

    def snapshot(self) -> dict[ObjectKey, dict]:
        """Return the full contents in serialized form, for equality checks in tests."""
        with self._lock:
            return {
                key: obj.model_dump(mode="json", by_alias=True)
                for key, obj in self._objects.items()
            }
