"""
Cilium Schema Variant

Domain-specific custom resources in the cilium.io/v2 group. Nodes and
endpoints are modeled in detail since the simulated processes read and write
them; policy and config kinds keep their spec bodies as free-form mappings.
"""

from typing import Any, Optional

from pydantic import Field

from .models import KubeModel, KubeObject


API_VERSION = "cilium.io/v2"


# =============================================================================
# CILIUM NODE
# =============================================================================

class CiliumNodeAddress(KubeModel):
    type: str
    ip: str


class IPAMSpec(KubeModel):
    pod_cidrs: list[str] = Field(default_factory=list, alias="podCIDRs")
    pool: dict[str, Any] = Field(default_factory=dict)


class CiliumNodeSpec(KubeModel):
    instance_id: str = Field(default="", alias="instance-id")
    addresses: list[CiliumNodeAddress] = Field(default_factory=list)
    ipam: IPAMSpec = Field(default_factory=IPAMSpec)
    health: dict[str, Any] = Field(default_factory=dict)


class CiliumNode(KubeObject):
    api_version: str = API_VERSION
    kind: str = "CiliumNode"
    spec: CiliumNodeSpec = Field(default_factory=CiliumNodeSpec)
    status: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# CILIUM ENDPOINT AND IDENTITY
# =============================================================================

class AddressPair(KubeModel):
    ipv4: Optional[str] = None
    ipv6: Optional[str] = None


class EndpointNetworking(KubeModel):
    addressing: list[AddressPair] = Field(default_factory=list)
    node: str = ""


class EndpointIdentity(KubeModel):
    id: int = 0
    labels: list[str] = Field(default_factory=list)


class EndpointStatus(KubeModel):
    id: int = 0
    state: str = ""
    identity: Optional[EndpointIdentity] = None
    networking: Optional[EndpointNetworking] = None


class CiliumEndpoint(KubeObject):
    api_version: str = API_VERSION
    kind: str = "CiliumEndpoint"
    status: EndpointStatus = Field(default_factory=EndpointStatus)


class CiliumIdentity(KubeObject):
    api_version: str = API_VERSION
    kind: str = "CiliumIdentity"
    security_labels: dict[str, str] = Field(default_factory=dict, alias="security-labels")


# =============================================================================
# POLICY AND CONFIG KINDS
# =============================================================================

class CiliumNetworkPolicy(KubeObject):
    api_version: str = API_VERSION
    kind: str = "CiliumNetworkPolicy"
    spec: Optional[dict[str, Any]] = None
    specs: Optional[list[dict[str, Any]]] = None


class CiliumClusterwideNetworkPolicy(CiliumNetworkPolicy):
    kind: str = "CiliumClusterwideNetworkPolicy"


class CiliumLocalRedirectPolicy(KubeObject):
    api_version: str = API_VERSION
    kind: str = "CiliumLocalRedirectPolicy"
    spec: dict[str, Any] = Field(default_factory=dict)


class CiliumEgressGatewayPolicy(KubeObject):
    api_version: str = API_VERSION
    kind: str = "CiliumEgressGatewayPolicy"
    spec: dict[str, Any] = Field(default_factory=dict)


class CiliumExternalWorkload(KubeObject):
    api_version: str = API_VERSION
    kind: str = "CiliumExternalWorkload"
    spec: dict[str, Any] = Field(default_factory=dict)
    status: dict[str, Any] = Field(default_factory=dict)


class CiliumEnvoyConfig(KubeObject):
    api_version: str = API_VERSION
    kind: str = "CiliumEnvoyConfig"
    spec: dict[str, Any] = Field(default_factory=dict)


class CiliumClusterwideEnvoyConfig(CiliumEnvoyConfig):
    kind: str = "CiliumClusterwideEnvoyConfig"


KINDS: dict[tuple[str, str], type[KubeObject]] = {
    (API_VERSION, model.model_fields["kind"].default): model
    for model in (
        CiliumNode,
        CiliumEndpoint,
        CiliumIdentity,
        CiliumNetworkPolicy,
        CiliumClusterwideNetworkPolicy,
        CiliumLocalRedirectPolicy,
        CiliumEgressGatewayPolicy,
        CiliumExternalWorkload,
        CiliumEnvoyConfig,
        CiliumClusterwideEnvoyConfig,
    )
}
