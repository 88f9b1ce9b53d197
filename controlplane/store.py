"""
Multi-Variant Store Module

Dispatches one logical mutation to every schema variant that can represent it.

The two processes under test observe the cluster API at different levels of
projection, so a single mutation has to land in each variant's tracker for
both of them to see it. The dispatch algorithm:

1. Convert the object to canonical form and encode it as JSON.
2. Let every (tracker, decoder) pair in registry order attempt a decode.
   Variants that do not recognize the kind are skipped.
3. Apply the decoded object to every accepting tracker: update if the
   coordinate exists there, add otherwise.
4. If no variant accepted the object, fail with NoAcceptorError.

Decoding completes for all pairs before any tracker is touched, so malformed
and unrecognized objects never leave partial state behind. The apply phase is
not atomic across trackers.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from .codec import SchemaDecoder, default_decoders, encode, to_unstructured
from .errors import NoAcceptorError, NotFoundError
from .models import AnyObject, GroupVersionResource, KubeObject, object_key
from .tracker import ObjectTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackerAndDecoder:
    """One registry entry: a variant's tracker and the decoder that feeds it."""
    tracker: ObjectTracker
    decoder: SchemaDecoder

    @property
    def name(self) -> str:
        return self.decoder.name


class MultiVariantStore:
    """Ordered registry of (tracker, decoder) pairs, fixed at construction."""

    def __init__(self, registry: Iterable[TrackerAndDecoder]):
        self._registry: tuple[TrackerAndDecoder, ...] = tuple(registry)
        if not self._registry:
            raise ValueError("MultiVariantStore requires at least one tracker")
        names = [td.name for td in self._registry]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate variant names in registry: {names}")

    @classmethod
    def with_default_variants(cls) -> "MultiVariantStore":
        """Build a store with fresh core, slim and cilium trackers."""
        return cls(
            TrackerAndDecoder(ObjectTracker(decoder.name), decoder)
            for decoder in default_decoders()
        )

    @property
    def registry(self) -> tuple[TrackerAndDecoder, ...]:
        return self._registry

    def tracker(self, name: str) -> ObjectTracker:
        """Return a variant's tracker for direct introspection."""
        for td in self._registry:
            if td.name == name:
                return td.tracker
        raise KeyError(f"No tracker named '{name}'. Available: {[td.name for td in self._registry]}")

    def trackers(self) -> list[ObjectTracker]:
        return [td.tracker for td in self._registry]

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def update(self, obj: AnyObject) -> list[str]:
        """
        Add or update one object in every variant that accepts it.

        Returns:
            Names of the variants that received the object, in registry order.

        Raises:
            MalformedObjectError: if a variant recognizes the kind but the
                payload does not validate.
            NoAcceptorError: if no variant recognizes the kind.
            AlreadyExistsError / NotFoundError: if a tracker changed underneath
                the existence check.
        """
        fields = to_unstructured(obj)
        key = object_key(fields)
        raw = encode(fields)

        accepted: list[tuple[TrackerAndDecoder, KubeObject]] = []
        rejected: list[str] = []
        for td in self._registry:
            decoded, ok = td.decoder.decode(raw)
            if ok:
                accepted.append((td, decoded))
            else:
                rejected.append(td.name)

        if not accepted:
            raise NoAcceptorError(
                f"None of the decoders accepted {key.gvr} (kind {fields.get('kind')}); "
                f"rejected by: {', '.join(rejected)}",
                details={"gvr": str(key.gvr), "kind": fields.get("kind"), "rejected_by": rejected},
            )

        for td, decoded in accepted:
            if key in td.tracker:
                td.tracker.update(decoded)
            else:
                td.tracker.add(decoded)

        names = [td.name for td, _ in accepted]
        logger.debug("update %s: applied to %s", key, names)
        return names

    def delete(self, obj: AnyObject) -> list[str]:
        """
        Delete one object's coordinate from every tracker that holds it.

        Returns:
            Names of the variants the object was removed from.

        Raises:
            NotFoundError: if no tracker held the coordinate.
        """
        key = object_key(to_unstructured(obj))
        removed: list[str] = []
        for td in self._registry:
            try:
                td.tracker.delete(key.gvr, key.namespace, key.name)
            except NotFoundError:
                continue
            removed.append(td.name)

        if not removed:
            raise NotFoundError(
                f"Failed to delete object {key} as it was not found in any tracker",
                details={"key": str(key)},
            )
        logger.debug("delete %s: removed from %s", key, removed)
        return removed

    def update_objects(self, *objs: AnyObject) -> None:
        for obj in objs:
            self.update(obj)

    def delete_objects(self, *objs: AnyObject) -> None:
        for obj in objs:
            self.delete(obj)

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get(self, gvr: GroupVersionResource, namespace: str, name: str) -> KubeObject:
        """
        Return the first match across trackers in registry order.

        Raises:
            NotFoundError: the last tracker's error, if no tracker holds the object.
        """
        *earlier, last = self._registry
        for td in earlier:
            try:
                return td.tracker.get(gvr, namespace, name)
            except NotFoundError:
                continue
        return last.tracker.get(gvr, namespace, name)
