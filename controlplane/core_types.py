"""
Core Schema Variant

The full representation of the built-in cluster kinds, as seen by a client
that uses the complete upstream types. Unknown fields are retained on every
model so that nothing in the original payload is lost.

Registered kinds:
- v1: Node, Pod, Service, Endpoints, Namespace
- discovery.k8s.io/v1 and discovery.k8s.io/v1beta1: EndpointSlice
"""

from typing import Any, Optional

from pydantic import Field

from .models import KubeModel, KubeObject


# =============================================================================
# NODES
# =============================================================================

class Taint(KubeModel):
    key: str
    value: str = ""
    effect: str


class NodeSpec(KubeModel):
    pod_cidr: str = Field(default="", alias="podCIDR")
    pod_cidrs: list[str] = Field(default_factory=list, alias="podCIDRs")
    provider_id: str = Field(default="", alias="providerID")
    unschedulable: bool = False
    taints: list[Taint] = Field(default_factory=list)


class NodeAddress(KubeModel):
    type: str
    address: str


class NodeCondition(KubeModel):
    type: str
    status: str
    reason: str = ""
    message: str = ""


class NodeStatus(KubeModel):
    addresses: list[NodeAddress] = Field(default_factory=list)
    conditions: list[NodeCondition] = Field(default_factory=list)
    capacity: dict[str, str] = Field(default_factory=dict)
    allocatable: dict[str, str] = Field(default_factory=dict)


class Node(KubeObject):
    api_version: str = "v1"
    kind: str = "Node"
    spec: NodeSpec = Field(default_factory=NodeSpec)
    status: NodeStatus = Field(default_factory=NodeStatus)


# =============================================================================
# PODS
# =============================================================================

class ContainerPort(KubeModel):
    container_port: int
    name: str = ""
    protocol: str = "TCP"


class Container(KubeModel):
    name: str
    image: str = ""
    ports: list[ContainerPort] = Field(default_factory=list)


class PodSpec(KubeModel):
    node_name: str = ""
    host_network: bool = False
    service_account_name: str = ""
    containers: list[Container] = Field(default_factory=list)


class PodIP(KubeModel):
    ip: str


class PodStatus(KubeModel):
    phase: str = ""
    host_ip: str = Field(default="", alias="hostIP")
    pod_ip: str = Field(default="", alias="podIP")
    pod_ips: list[PodIP] = Field(default_factory=list, alias="podIPs")


class Pod(KubeObject):
    api_version: str = "v1"
    kind: str = "Pod"
    spec: PodSpec = Field(default_factory=PodSpec)
    status: PodStatus = Field(default_factory=PodStatus)


# =============================================================================
# SERVICES AND ENDPOINTS
# =============================================================================

class ServicePort(KubeModel):
    name: str = ""
    protocol: str = "TCP"
    port: int
    target_port: Optional[Any] = None
    node_port: Optional[int] = None


class ServiceSpec(KubeModel):
    type: str = "ClusterIP"
    cluster_ip: str = Field(default="", alias="clusterIP")
    cluster_ips: list[str] = Field(default_factory=list, alias="clusterIPs")
    selector: dict[str, str] = Field(default_factory=dict)
    ports: list[ServicePort] = Field(default_factory=list)
    external_traffic_policy: str = ""
    session_affinity: str = ""


class Service(KubeObject):
    api_version: str = "v1"
    kind: str = "Service"
    spec: ServiceSpec = Field(default_factory=ServiceSpec)
    status: dict[str, Any] = Field(default_factory=dict)


class ObjectReference(KubeModel):
    kind: str = ""
    namespace: str = ""
    name: str = ""


class EndpointAddress(KubeModel):
    ip: str
    hostname: str = ""
    node_name: Optional[str] = None
    target_ref: Optional[ObjectReference] = None


class EndpointPort(KubeModel):
    name: str = ""
    port: int
    protocol: str = "TCP"


class EndpointSubset(KubeModel):
    addresses: list[EndpointAddress] = Field(default_factory=list)
    not_ready_addresses: list[EndpointAddress] = Field(default_factory=list)
    ports: list[EndpointPort] = Field(default_factory=list)


class Endpoints(KubeObject):
    api_version: str = "v1"
    kind: str = "Endpoints"
    subsets: list[EndpointSubset] = Field(default_factory=list)


class Namespace(KubeObject):
    api_version: str = "v1"
    kind: str = "Namespace"
    spec: dict[str, Any] = Field(default_factory=dict)
    status: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# ENDPOINT SLICES
# =============================================================================

class EndpointConditions(KubeModel):
    ready: Optional[bool] = None
    serving: Optional[bool] = None
    terminating: Optional[bool] = None


class SliceEndpoint(KubeModel):
    addresses: list[str]
    conditions: EndpointConditions = Field(default_factory=EndpointConditions)
    hostname: Optional[str] = None
    node_name: Optional[str] = None
    zone: Optional[str] = None
    # v1beta1 only; removed in discovery.k8s.io/v1
    topology: Optional[dict[str, str]] = None


class EndpointSlicePort(KubeModel):
    name: Optional[str] = None
    protocol: str = "TCP"
    port: Optional[int] = None


class EndpointSlice(KubeObject):
    api_version: str = "discovery.k8s.io/v1"
    kind: str = "EndpointSlice"
    address_type: str
    endpoints: list[SliceEndpoint] = Field(default_factory=list)
    ports: list[EndpointSlicePort] = Field(default_factory=list)


KINDS: dict[tuple[str, str], type[KubeObject]] = {
    ("v1", "Node"): Node,
    ("v1", "Pod"): Pod,
    ("v1", "Service"): Service,
    ("v1", "Endpoints"): Endpoints,
    ("v1", "Namespace"): Namespace,
    ("discovery.k8s.io/v1", "EndpointSlice"): EndpointSlice,
    ("discovery.k8s.io/v1beta1", "EndpointSlice"): EndpointSlice,
}
