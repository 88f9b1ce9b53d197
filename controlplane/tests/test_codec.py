"""
Tests for the schema decoders and bulk decoding.

Tests verify:
- A decoder accepts kinds in its registry and returns (None, False) otherwise
- Malformed payloads raise MalformedObjectError instead of being rejected
- The core variant retains unknown fields; the slim projection drops them
- Typed objects and plain mappings share one canonical form
- Multi-document YAML blobs and List documents are expanded into objects
"""

import json
from pathlib import Path

import pytest

from controlplane import cilium_types, core_types, slim_types
from controlplane.codec import (
    SchemaDecoder,
    default_decoders,
    encode,
    to_unstructured,
    unmarshal_list,
)
from controlplane.errors import MalformedObjectError
from controlplane.models import ObjectMeta

TESTDATA = Path(__file__).parent / "testdata"


def _raw(obj: dict) -> bytes:
    return json.dumps(obj).encode("utf-8")


@pytest.fixture
def decoders():
    """Return decoders keyed by variant name."""
    return {decoder.name: decoder for decoder in default_decoders()}


@pytest.fixture
def node_payload():
    return {
        "apiVersion": "v1",
        "kind": "Node",
        "metadata": {
            "name": "worker-1",
            "creationTimestamp": "2022-06-01T00:00:00Z",
        },
        "spec": {"podCIDRs": ["10.244.1.0/24"], "providerID": "kind://worker-1"},
        "status": {
            "addresses": [{"type": "InternalIP", "address": "172.18.0.3"}],
            "nodeInfo": {"kubeletVersion": "v1.24.0"},
        },
    }


class TestDecodeDispatch:
    """Test accept vs reject per variant."""

    def test_default_decoder_order(self, decoders):
        """Verify dispatch priority is core, slim, cilium."""
        assert [d.name for d in default_decoders()] == ["core", "slim", "cilium"]

    def test_core_accepts_node(self, decoders, node_payload):
        """Verify the core decoder accepts a Node and returns a typed object."""
        obj, ok = decoders["core"].decode(_raw(node_payload))
        assert ok is True
        assert isinstance(obj, core_types.Node)
        assert obj.metadata.name == "worker-1"
        assert obj.spec.pod_cidrs == ["10.244.1.0/24"]

    def test_cilium_rejects_node(self, decoders, node_payload):
        """A kind outside the registry is a negative result, not an exception."""
        obj, ok = decoders["cilium"].decode(_raw(node_payload))
        assert ok is False
        assert obj is None

    def test_core_rejects_cilium_node(self, decoders):
        """Verify only the cilium decoder accepts a CiliumNode; the others reject it without raising."""
        payload = {"apiVersion": "cilium.io/v2", "kind": "CiliumNode", "metadata": {"name": "n1"}}
        assert decoders["core"].decode(_raw(payload)) == (None, False)
        assert decoders["slim"].decode(_raw(payload)) == (None, False)
        obj, ok = decoders["cilium"].decode(_raw(payload))
        assert ok and isinstance(obj, cilium_types.CiliumNode)

    def test_unknown_version_is_rejected(self, decoders):
        """Kind matching alone is not enough; the apiVersion must be registered too."""
        payload = {"apiVersion": "v2", "kind": "Node", "metadata": {"name": "n1"}}
        for decoder in decoders.values():
            assert decoder.decode(_raw(payload)) == (None, False)

    def test_endpointslice_both_versions(self, decoders):
        """Verify EndpointSlice is recognized as discovery v1 and v1beta1."""
        for api_version in ("discovery.k8s.io/v1", "discovery.k8s.io/v1beta1"):
            payload = {
                "apiVersion": api_version,
                "kind": "EndpointSlice",
                "metadata": {"name": "s", "namespace": "default"},
                "addressType": "IPv4",
            }
            obj, ok = decoders["slim"].decode(_raw(payload))
            assert ok
            assert obj.api_version == api_version

    def test_recognizes(self):
        """Verify recognizes() reports registry membership."""
        decoder = SchemaDecoder("test", {("v1", "Pod"): core_types.Pod})
        assert decoder.recognizes("v1", "Pod")
        assert not decoder.recognizes("v1", "Node")


class TestMalformedPayloads:
    """Test that structurally invalid payloads are fatal."""

    def test_non_mapping_metadata(self, decoders):
        """Verify metadata that is not a mapping is malformed for every variant."""
        payload = _raw({"apiVersion": "v1", "kind": "Node", "metadata": "worker-1"})
        for decoder in decoders.values():
            with pytest.raises(MalformedObjectError, match="metadata"):
                decoder.decode(payload)

    def test_invalid_json(self, decoders):
        """Verify a payload that is not JSON is malformed."""
        with pytest.raises(MalformedObjectError):
            decoders["core"].decode(b"{not json")

    def test_non_object_payload(self, decoders):
        """Verify a JSON array payload is malformed."""
        with pytest.raises(MalformedObjectError, match="JSON object"):
            decoders["core"].decode(b"[1, 2, 3]")

    def test_missing_kind(self, decoders):
        """Verify a payload without kind is malformed."""
        with pytest.raises(MalformedObjectError, match="Kind"):
            decoders["core"].decode(_raw({"apiVersion": "v1", "metadata": {}}))

    def test_missing_api_version(self, decoders):
        """Verify a payload without apiVersion is malformed."""
        with pytest.raises(MalformedObjectError, match="apiVersion"):
            decoders["core"].decode(_raw({"kind": "Node"}))

    def test_wrong_field_type(self, decoders):
        """A recognized kind whose fields fail validation is malformed, not rejected."""
        payload = {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": {"name": "svc", "namespace": "default"},
            "spec": {"ports": [{"port": "not-a-number"}]},
        }
        with pytest.raises(MalformedObjectError) as exc_info:
            decoders["core"].decode(_raw(payload))
        assert exc_info.value.code == "DECODE_MALFORMED"
        assert exc_info.value.details["variant"] == "core"

    def test_endpointslice_requires_address_type(self, decoders):
        """Verify an EndpointSlice without addressType is malformed."""
        payload = {
            "apiVersion": "discovery.k8s.io/v1",
            "kind": "EndpointSlice",
            "metadata": {"name": "s", "namespace": "default"},
        }
        with pytest.raises(MalformedObjectError):
            decoders["slim"].decode(_raw(payload))


class TestVariantProjections:
    """Test that variants produce independent representations."""

    def test_core_retains_unknown_fields(self, decoders, node_payload):
        """Verify the core variant keeps fields it does not model."""
        obj, _ = decoders["core"].decode(_raw(node_payload))
        dumped = to_unstructured(obj)
        assert dumped["status"]["nodeInfo"] == {"kubeletVersion": "v1.24.0"}
        assert dumped["metadata"]["creationTimestamp"] == "2022-06-01T00:00:00Z"

    def test_slim_drops_unknown_fields(self, decoders, node_payload):
        """Verify the slim variant drops fields it does not model."""
        obj, _ = decoders["slim"].decode(_raw(node_payload))
        assert isinstance(obj, slim_types.Node)
        dumped = to_unstructured(obj)
        assert "nodeInfo" not in dumped["status"]
        assert "creationTimestamp" not in dumped["metadata"]
        assert "providerID" not in dumped["spec"]
        assert dumped["spec"]["podCIDRs"] == ["10.244.1.0/24"]

    def test_decode_does_not_share_state(self, decoders, node_payload):
        """Verify two decodes of one payload return independent objects."""
        raw = _raw(node_payload)
        first, _ = decoders["core"].decode(raw)
        second, _ = decoders["core"].decode(raw)
        first.metadata.labels["mutated"] = "yes"
        assert "mutated" not in second.metadata.labels


class TestCanonicalForm:
    """Test conversion to unstructured form and the JSON intermediate encoding."""

    def test_typed_object_uses_wire_names(self):
        """Verify typed objects convert to camelCase wire names."""
        pod = core_types.Pod(
            metadata=ObjectMeta(name="p", namespace="default"),
            spec=core_types.PodSpec(node_name="worker-1", host_network=True),
            status=core_types.PodStatus(pod_ip="10.0.0.1"),
        )
        fields = to_unstructured(pod)
        assert fields["apiVersion"] == "v1"
        assert fields["kind"] == "Pod"
        assert fields["spec"]["nodeName"] == "worker-1"
        assert fields["spec"]["hostNetwork"] is True
        assert fields["status"]["podIP"] == "10.0.0.1"

    def test_encode_preserves_key_order(self):
        """Verify encoding keeps the caller's key order."""
        fields = {"kind": "Namespace", "apiVersion": "v1", "metadata": {"name": "kube-system"}}
        assert list(json.loads(encode(fields))) == ["kind", "apiVersion", "metadata"]

    def test_slim_object_decodes_in_core(self, decoders):
        """An object built from one variant's types is readable by another variant."""
        slim_node = slim_types.Node(metadata={"name": "n1"}, spec={"podCIDR": "10.0.1.0/24"})
        obj, ok = decoders["core"].decode(encode(slim_node))
        assert ok
        assert isinstance(obj, core_types.Node)
        assert obj.spec.pod_cidr == "10.0.1.0/24"

    def test_unsupported_type(self):
        """Verify objects that are neither models nor mappings are malformed."""
        with pytest.raises(MalformedObjectError):
            to_unstructured(["not", "an", "object"])


class TestUnmarshalList:
    """Test bulk decoding of fixture files."""

    def test_multi_document_file(self):
        """Verify each YAML document becomes one object."""
        objs = unmarshal_list((TESTDATA / "nodes.yaml").read_bytes())
        assert [o["metadata"]["name"] for o in objs] == ["worker-1", "worker-2"]
        assert all(o["kind"] == "Node" for o in objs)

    def test_list_document_is_expanded(self):
        """Verify a List document is expanded into its items."""
        objs = unmarshal_list((TESTDATA / "services.yaml").read_bytes())
        assert [o["kind"] for o in objs] == ["Service", "EndpointSlice", "Endpoints"]

    def test_empty_blob(self):
        """Verify empty input and empty documents yield no objects."""
        assert unmarshal_list(b"") == []
        assert unmarshal_list("---\n---\n") == []

    def test_scalar_document_is_malformed(self):
        """Verify a scalar document is malformed."""
        with pytest.raises(MalformedObjectError, match="document 0"):
            unmarshal_list("just a string\n")

    def test_document_without_kind_is_malformed(self):
        """Verify a document without kind is malformed."""
        with pytest.raises(MalformedObjectError):
            unmarshal_list("apiVersion: v1\nmetadata:\n  name: x\n")

    def test_non_mapping_metadata_is_malformed(self):
        """Verify a document whose metadata is a list is rejected as malformed."""
        with pytest.raises(MalformedObjectError, match="metadata"):
            unmarshal_list("apiVersion: v1\nkind: Node\nmetadata:\n- a\n")

    def test_non_mapping_metadata_in_list_item_is_malformed(self):
        """Verify items expanded from a List document are checked the same way."""
        with pytest.raises(MalformedObjectError, match="metadata"):
            unmarshal_list("apiVersion: v1\nkind: List\nitems:\n- apiVersion: v1\n  kind: Node\n  metadata: worker-1\n")

    def test_invalid_yaml(self):
        """Verify unparsable YAML is malformed."""
        with pytest.raises(MalformedObjectError, match="failed to parse"):
            unmarshal_list("kind: [unclosed\n")

    def test_json_is_accepted(self):
        """Verify a JSON document is accepted as YAML."""
        objs = unmarshal_list('{"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": "a"}}')
        assert objs[0]["metadata"]["name"] == "a"
