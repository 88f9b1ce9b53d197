"""
Tests for multi-variant dispatch.

Tests verify:
- Idempotent dispatch: re-applying an object updates, never duplicates
- Dispatch completeness: exactly the accepting variants hold the object
- No-acceptor detection leaves every tracker unchanged
- Malformed objects fail before any tracker is mutated
- Deletion symmetry: delete removes from every holder; a second delete fails
- Lookup returns the first match in registry order
"""

import pytest

from controlplane import cilium_types, core_types, slim_types
from controlplane.codec import SchemaDecoder
from controlplane.errors import MalformedObjectError, NoAcceptorError, NotFoundError
from controlplane.models import CILIUM_NODES, NODES, ObjectKey, ObjectMeta
from controlplane.store import MultiVariantStore, TrackerAndDecoder
from controlplane.tracker import ObjectTracker


@pytest.fixture
def store():
    return MultiVariantStore.with_default_variants()


@pytest.fixture
def node():
    return {
        "apiVersion": "v1",
        "kind": "Node",
        "metadata": {"name": "worker-1", "labels": {"zone": "a"}},
        "spec": {"podCIDRs": ["10.244.1.0/24"]},
    }


@pytest.fixture
def cilium_node():
    return cilium_types.CiliumNode(metadata=ObjectMeta(name="worker-1"))


def _snapshots(store: MultiVariantStore) -> dict:
    return {t.name: t.snapshot() for t in store.trackers()}


class TestRegistry:
    """Test registry construction."""

    def test_default_variants(self, store):
        """Verify the default registry holds core, slim and cilium in order."""
        assert [td.name for td in store.registry] == ["core", "slim", "cilium"]
        assert store.tracker("slim").name == "slim"

    def test_unknown_tracker_name(self, store):
        """Verify an unknown tracker name raises KeyError."""
        with pytest.raises(KeyError):
            store.tracker("apiext")

    def test_empty_registry_rejected(self):
        """Verify an empty registry is rejected."""
        with pytest.raises(ValueError):
            MultiVariantStore([])

    def test_duplicate_names_rejected(self):
        """Verify duplicate variant names are rejected."""
        decoder = SchemaDecoder("core", core_types.KINDS)
        with pytest.raises(ValueError, match="Duplicate"):
            MultiVariantStore([
                TrackerAndDecoder(ObjectTracker("a"), decoder),
                TrackerAndDecoder(ObjectTracker("b"), decoder),
            ])


class TestIdempotentDispatch:
    """Test that repeated updates never create duplicates."""

    def test_first_update_adds(self, store, node):
        """Verify the first update adds to core and slim."""
        assert store.update(node) == ["core", "slim"]
        assert len(store.tracker("core")) == 1
        assert len(store.tracker("slim")) == 1

    def test_reapply_same_payload_updates(self, store, node):
        """Verify reapplying an object does not duplicate it."""
        store.update(node)
        store.update(node)
        assert len(store.tracker("core")) == 1
        assert len(store.tracker("slim")) == 1

    def test_reapply_changed_payload_replaces(self, store, node):
        """Verify a changed payload replaces the stored object in every variant."""
        store.update(node)
        node["metadata"]["labels"] = {"zone": "b"}
        store.update(node)
        for name in ("core", "slim"):
            obj = store.tracker(name).get(NODES, "", "worker-1")
            assert obj.metadata.labels == {"zone": "b"}

    def test_update_objects_applies_in_order(self, store, node, cilium_node):
        """Verify update_objects() applies every object."""
        store.update_objects(node, cilium_node)
        assert len(store.tracker("cilium")) == 1
        assert len(store.tracker("core")) == 1


class TestDispatchCompleteness:
    """Test that exactly the accepting variants receive the object."""

    def test_builtin_kind_lands_in_core_and_slim(self, store, node):
        """Verify a Node lands in core and slim only."""
        store.update(node)
        assert isinstance(store.tracker("core").get(NODES, "", "worker-1"), core_types.Node)
        assert isinstance(store.tracker("slim").get(NODES, "", "worker-1"), slim_types.Node)
        with pytest.raises(NotFoundError):
            store.tracker("cilium").get(NODES, "", "worker-1")
        assert store.get(NODES, "", "worker-1") is not None

    def test_cilium_kind_lands_only_in_cilium(self, store, cilium_node):
        """Verify a CiliumNode lands in cilium only."""
        assert store.update(cilium_node) == ["cilium"]
        assert len(store.tracker("core")) == 0
        assert len(store.tracker("slim")) == 0
        assert isinstance(store.get(CILIUM_NODES, "", "worker-1"), cilium_types.CiliumNode)

    def test_typed_object_of_one_variant_reaches_others(self, store):
        """Writing a slim object once makes it visible to the core variant too."""
        store.update(slim_types.Node(metadata=ObjectMeta(name="n1")))
        assert isinstance(store.tracker("core").get(NODES, "", "n1"), core_types.Node)

    def test_partial_presence_is_repaired(self, store, node):
        """If one tracker already holds the key and another does not, each gets the right op."""
        store.tracker("slim").add(slim_types.Node(metadata=ObjectMeta(name="worker-1")))
        store.update(node)
        assert store.tracker("slim").get(NODES, "", "worker-1").metadata.labels == {"zone": "a"}
        assert store.tracker("core").get(NODES, "", "worker-1").metadata.labels == {"zone": "a"}


class TestNoAcceptor:
    """Test objects no variant recognizes."""

    def test_unknown_kind_fails_without_mutation(self, store, node, cilium_node):
        """Verify an unknown kind raises NoAcceptorError and changes no tracker."""
        store.update_objects(node, cilium_node)
        before = _snapshots(store)

        unknown = {"apiVersion": "apps/v1", "kind": "Deployment", "metadata": {"name": "d", "namespace": "default"}}
        with pytest.raises(NoAcceptorError) as exc_info:
            store.update(unknown)

        assert exc_info.value.details["kind"] == "Deployment"
        assert exc_info.value.details["rejected_by"] == ["core", "slim", "cilium"]
        assert "deployments" in str(exc_info.value)
        assert _snapshots(store) == before

    def test_malformed_object_fails_without_mutation(self, store):
        """Verify a malformed object changes no tracker."""
        before = _snapshots(store)
        bad = {"apiVersion": "v1", "kind": "Node", "metadata": {"name": "n"}, "spec": {"podCIDRs": "not-a-list"}}
        with pytest.raises(MalformedObjectError):
            store.update(bad)
        assert _snapshots(store) == before


class TestMalformedCoordinates:
    """Test objects whose coordinate cannot be computed."""

    @pytest.mark.parametrize(
        "bad",
        [
            {"apiVersion": "v1", "kind": "Node", "metadata": "worker-1"},
            {"apiVersion": "v1", "kind": "Node", "metadata": ["worker-1"]},
            {"apiVersion": "v1", "kind": 5, "metadata": {"name": "worker-1"}},
            {"apiVersion": ["v1"], "kind": "Node", "metadata": {"name": "worker-1"}},
        ],
    )
    def test_update_raises_malformed(self, store, bad):
        """Verify a non-mapping metadata or non-string type field is a malformed payload."""
        before = _snapshots(store)
        with pytest.raises(MalformedObjectError) as exc_info:
            store.update(bad)
        assert exc_info.value.code == "DECODE_MALFORMED"
        assert _snapshots(store) == before

    def test_delete_raises_malformed(self, store, node):
        """Verify delete reports a malformed payload instead of crashing on it."""
        store.update(node)
        with pytest.raises(MalformedObjectError):
            store.delete({"apiVersion": "v1", "kind": "Node", "metadata": ["worker-1"]})
        assert len(store.tracker("core")) == 1


class TestDeletion:
    """Test delete symmetry."""

    def test_delete_removes_from_all_holders(self, store, node):
        """Verify delete removes the object from every tracker holding it."""
        store.update(node)
        assert store.delete(node) == ["core", "slim"]
        for tracker in store.trackers():
            assert ObjectKey(NODES, "", "worker-1") not in tracker

    def test_second_delete_fails(self, store, node):
        """Verify a second delete raises NotFoundError."""
        store.update(node)
        store.delete(node)
        with pytest.raises(NotFoundError, match="not found in any tracker"):
            store.delete(node)

    def test_delete_tolerates_partial_presence(self, store, node):
        """Verify delete succeeds when only some trackers hold the object."""
        store.update(node)
        store.tracker("core").delete(NODES, "", "worker-1")
        assert store.delete(node) == ["slim"]

    def test_delete_unknown_kind_is_not_found(self, store):
        """Verify deleting an object nobody holds raises NotFoundError."""
        with pytest.raises(NotFoundError):
            store.delete({"apiVersion": "apps/v1", "kind": "Deployment", "metadata": {"name": "d"}})

    def test_delete_objects(self, store, node, cilium_node):
        """Verify delete_objects() removes every object."""
        store.update_objects(node, cilium_node)
        store.delete_objects(node, cilium_node)
        assert all(len(t) == 0 for t in store.trackers())


class TestLookup:
    """Test read-through lookup across trackers."""

    def test_first_match_wins(self, store, node):
        """Verify get() returns the core object when several trackers hold it."""
        store.update(node)
        assert isinstance(store.get(NODES, "", "worker-1"), core_types.Node)

    def test_falls_through_to_later_trackers(self, store):
        """Verify get() falls through to later trackers."""
        store.tracker("slim").add(slim_types.Node(metadata=ObjectMeta(name="slim-only")))
        assert isinstance(store.get(NODES, "", "slim-only"), slim_types.Node)

    def test_missing_everywhere(self, store):
        """Verify get() raises the last tracker's NotFoundError."""
        with pytest.raises(NotFoundError, match="cilium tracker"):
            store.get(NODES, "", "nope")

    def test_single_tracker_registry(self):
        """Verify lookup works and still raises NotFoundError with only one variant."""
        decoder = SchemaDecoder("core", core_types.KINDS)
        store = MultiVariantStore([TrackerAndDecoder(ObjectTracker("core"), decoder)])
        with pytest.raises(NotFoundError):
            store.get(NODES, "", "nope")
        store.update({"apiVersion": "v1", "kind": "Node", "metadata": {"name": "n1"}})
        assert store.get(NODES, "", "n1").metadata.name == "n1"
