"""
Shared data models for the control-plane harness.

These models define the addressing scheme used by every store:
- GroupVersionKind / GroupVersionResource: API type identifiers
- ObjectKey: the (resource, namespace, name) coordinate of one object
- ObjectMeta / KubeObject: the common envelope every typed resource carries
"""

from typing import Any, Mapping, NamedTuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .errors import MalformedObjectError


# Kinds whose lowercase name is already plural.
UNPLURALIZED_SUFFIXES = ("endpoints",)


class GroupVersionKind(NamedTuple):
    group: str
    version: str
    kind: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


class GroupVersionResource(NamedTuple):
    group: str
    version: str
    resource: str

    def __str__(self) -> str:
        if self.group:
            return f"{self.group}/{self.version}, Resource={self.resource}"
        return f"{self.version}, Resource={self.resource}"


class ObjectKey(NamedTuple):
    """Resource Coordinate: unique within a single tracker."""
    gvr: GroupVersionResource
    namespace: str
    name: str

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.gvr.resource} {self.namespace}/{self.name}"
        return f"{self.gvr.resource} {self.name}"


# =============================================================================
# TYPED ENVELOPE
# =============================================================================

class KubeModel(BaseModel):
    """Base for all typed API models: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class OwnerReference(KubeModel):
    api_version: str
    kind: str
    name: str
    uid: str = ""
    controller: bool | None = None


class ObjectMeta(KubeModel):
    """Standard object metadata. Unknown fields are retained."""
    name: str = ""
    namespace: str = ""
    uid: str = ""
    resource_version: str = ""
    generation: int | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    owner_references: list[OwnerReference] = Field(default_factory=list)


class KubeObject(KubeModel):
    """A typed resource object: apiVersion, kind and metadata plus variant fields."""
    api_version: str
    kind: str
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)

    @property
    def gvk(self) -> GroupVersionKind:
        return parse_gvk(self.api_version, self.kind)


Unstructured = dict[str, Any]
AnyObject = Union[KubeObject, Unstructured]


# =============================================================================
# ADDRESSING HELPERS
# =============================================================================

def parse_gvk(api_version: str, kind: str) -> GroupVersionKind:
    """Split 'group/version' (or bare 'version' for the core group) into a GVK."""
    if "/" in api_version:
        group, version = api_version.split("/", 1)
    else:
        group, version = "", api_version
    return GroupVersionKind(group, version, kind)


def guess_kind_to_resource(gvk: GroupVersionKind) -> GroupVersionResource:
    """
    Guess the plural resource name for a kind.

    Lowercases the kind and applies naive English pluralization:
    'Node' -> 'nodes', 'Policy' -> 'policies', 'Ingress' -> 'ingresses'.
    Kinds listed in UNPLURALIZED_SUFFIXES are returned unchanged.
    """
    singular = gvk.kind.lower()
    if not singular:
        return GroupVersionResource(gvk.group, gvk.version, "")
    if singular.endswith(UNPLURALIZED_SUFFIXES):
        plural = singular
    elif singular.endswith("s"):
        plural = singular + "es"
    elif singular.endswith("y"):
        plural = singular[:-1] + "ies"
    else:
        plural = singular + "s"
    return GroupVersionResource(gvk.group, gvk.version, plural)


def object_key(obj: AnyObject) -> ObjectKey:
    """
    Compute the coordinate of a typed or unstructured object.

    Raises:
        MalformedObjectError: if an unstructured object has a non-string
            apiVersion or kind, or non-mapping metadata.
    """
    if isinstance(obj, KubeObject):
        gvk = obj.gvk
        namespace, name = obj.metadata.namespace, obj.metadata.name
    else:
        api_version, kind = obj.get("apiVersion", ""), obj.get("kind", "")
        if not isinstance(api_version, str) or not isinstance(kind, str):
            raise MalformedObjectError(
                f"apiVersion and kind must be strings, got {api_version!r} and {kind!r}",
                details={"apiVersion": repr(api_version), "kind": repr(kind)},
            )
        metadata = obj.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            raise MalformedObjectError(
                f"metadata of {kind} must be a mapping, got {type(metadata).__name__}",
                details={"kind": kind},
            )
        gvk = parse_gvk(api_version, kind)
        namespace, name = metadata.get("namespace", ""), metadata.get("name", "")
    return ObjectKey(guess_kind_to_resource(gvk), namespace or "", name or "")


# =============================================================================
# WELL-KNOWN RESOURCES
# =============================================================================

NODES = GroupVersionResource("", "v1", "nodes")
PODS = GroupVersionResource("", "v1", "pods")
SERVICES = GroupVersionResource("", "v1", "services")
ENDPOINTS = GroupVersionResource("", "v1", "endpoints")
NAMESPACES = GroupVersionResource("", "v1", "namespaces")
ENDPOINT_SLICES_V1 = GroupVersionResource("discovery.k8s.io", "v1", "endpointslices")
ENDPOINT_SLICES_V1BETA1 = GroupVersionResource("discovery.k8s.io", "v1beta1", "endpointslices")
CILIUM_NODES = GroupVersionResource("cilium.io", "v2", "ciliumnodes")
CILIUM_ENDPOINTS = GroupVersionResource("cilium.io", "v2", "ciliumendpoints")
