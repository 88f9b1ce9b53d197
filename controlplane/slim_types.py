"""
Slim Schema Variant

A reduced projection of the built-in kinds, matching what the agent observes.
Only the fields the agent reads are modeled; everything else in the payload is
dropped on decode. This variant recognizes the same kinds as the core variant
but produces its own, independent objects.
"""

from typing import Optional

from pydantic import ConfigDict, Field

from .models import KubeModel, KubeObject, ObjectMeta


class SlimModel(KubeModel):
    model_config = ConfigDict(extra="ignore")


class SlimObjectMeta(ObjectMeta):
    model_config = ConfigDict(extra="ignore")


class SlimObject(KubeObject):
    model_config = ConfigDict(extra="ignore")

    metadata: SlimObjectMeta = Field(default_factory=SlimObjectMeta)


# =============================================================================
# NODES AND PODS
# =============================================================================

class SlimNodeAddress(SlimModel):
    type: str
    address: str


class SlimNodeSpec(SlimModel):
    pod_cidr: str = Field(default="", alias="podCIDR")
    pod_cidrs: list[str] = Field(default_factory=list, alias="podCIDRs")


class SlimNodeStatus(SlimModel):
    addresses: list[SlimNodeAddress] = Field(default_factory=list)


class Node(SlimObject):
    api_version: str = "v1"
    kind: str = "Node"
    spec: SlimNodeSpec = Field(default_factory=SlimNodeSpec)
    status: SlimNodeStatus = Field(default_factory=SlimNodeStatus)


class SlimPodSpec(SlimModel):
    node_name: str = ""
    host_network: bool = False


class SlimPodIP(SlimModel):
    ip: str


class SlimPodStatus(SlimModel):
    phase: str = ""
    host_ip: str = Field(default="", alias="hostIP")
    pod_ip: str = Field(default="", alias="podIP")
    pod_ips: list[SlimPodIP] = Field(default_factory=list, alias="podIPs")


class Pod(SlimObject):
    api_version: str = "v1"
    kind: str = "Pod"
    spec: SlimPodSpec = Field(default_factory=SlimPodSpec)
    status: SlimPodStatus = Field(default_factory=SlimPodStatus)


class Namespace(SlimObject):
    api_version: str = "v1"
    kind: str = "Namespace"


# =============================================================================
# SERVICES AND ENDPOINTS
# =============================================================================

class SlimServicePort(SlimModel):
    name: str = ""
    protocol: str = "TCP"
    port: int
    node_port: Optional[int] = None


class SlimServiceSpec(SlimModel):
    type: str = "ClusterIP"
    cluster_ip: str = Field(default="", alias="clusterIP")
    cluster_ips: list[str] = Field(default_factory=list, alias="clusterIPs")
    selector: dict[str, str] = Field(default_factory=dict)
    ports: list[SlimServicePort] = Field(default_factory=list)
    external_traffic_policy: str = ""


class Service(SlimObject):
    api_version: str = "v1"
    kind: str = "Service"
    spec: SlimServiceSpec = Field(default_factory=SlimServiceSpec)


class SlimEndpointAddress(SlimModel):
    ip: str
    node_name: Optional[str] = None


class SlimEndpointPort(SlimModel):
    name: str = ""
    port: int
    protocol: str = "TCP"


class SlimEndpointSubset(SlimModel):
    addresses: list[SlimEndpointAddress] = Field(default_factory=list)
    ports: list[SlimEndpointPort] = Field(default_factory=list)


class Endpoints(SlimObject):
    api_version: str = "v1"
    kind: str = "Endpoints"
    subsets: list[SlimEndpointSubset] = Field(default_factory=list)


class SlimEndpointConditions(SlimModel):
    ready: Optional[bool] = None


class SlimSliceEndpoint(SlimModel):
    addresses: list[str]
    conditions: SlimEndpointConditions = Field(default_factory=SlimEndpointConditions)
    node_name: Optional[str] = None


class SlimEndpointSlicePort(SlimModel):
    name: Optional[str] = None
    protocol: str = "TCP"
    port: Optional[int] = None


class EndpointSlice(SlimObject):
    api_version: str = "discovery.k8s.io/v1"
    kind: str = "EndpointSlice"
    address_type: str
    endpoints: list[SlimSliceEndpoint] = Field(default_factory=list)
    ports: list[SlimEndpointSlicePort] = Field(default_factory=list)


KINDS: dict[tuple[str, str], type[KubeObject]] = {
    ("v1", "Node"): Node,
    ("v1", "Pod"): Pod,
    ("v1", "Service"): Service,
    ("v1", "Endpoints"): Endpoints,
    ("v1", "Namespace"): Namespace,
    ("discovery.k8s.io/v1", "EndpointSlice"): EndpointSlice,
    ("discovery.k8s.io/v1beta1", "EndpointSlice"): EndpointSlice,
}


def service_frontends(service: Service) -> list[tuple[str, int, str]]:
    """Return (ip, port, protocol) frontends for a slim Service."""
    ips = list(service.spec.cluster_ips) or (
        [service.spec.cluster_ip] if service.spec.cluster_ip else []
    )
    return [
        (ip, port.port, port.protocol)
        for ip in ips
        if ip and ip != "None"
        for port in service.spec.ports
    ]

