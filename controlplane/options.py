"""
Process Options

Configuration structures handed to the simulated agent and controller. One
pair is built per harness by setup_environment(); nothing here is
process-global. Fields are named and enumerable via model_fields, and
assignments are validated so test overrides cannot smuggle in bad values.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class IdentityAllocationMode(str, Enum):
    CRD = "crd"
    KVSTORE = "kvstore"


class IPAMMode(str, Enum):
    KUBERNETES = "kubernetes"
    CLUSTER_POOL = "cluster-pool"


class KubeProxyReplacement(str, Enum):
    DISABLED = "disabled"
    PARTIAL = "partial"
    STRICT = "strict"


class MutableOption(str, Enum):
    """Runtime-toggleable agent options."""
    DROP_NOTIFY = "DropNotification"
    TRACE_NOTIFY = "TraceNotification"
    POLICY_VERDICT_NOTIFY = "PolicyVerdictNotification"
    DEBUG = "Debug"


class AgentOptions(BaseModel):
    """Agent configuration with the harness defaults applied."""
    model_config = ConfigDict(validate_assignment=True)

    identity_allocation_mode: IdentityAllocationMode = IdentityAllocationMode.CRD
    dry_mode: bool = True
    ipam: IPAMMode = IPAMMode.KUBERNETES
    opts: dict[MutableOption, bool] = Field(
        default_factory=lambda: {option: True for option in MutableOption}
    )
    enable_ipsec: bool = False
    enable_ipv4: bool = True
    enable_ipv6: bool = False
    kube_proxy_replacement: KubeProxyReplacement = KubeProxyReplacement.STRICT
    enable_host_ip_restore: bool = False
    k8s_require_ipv6_pod_cidr: bool = False
    k8s_enable_endpoint_slice: bool = True
    enable_l7_proxy: bool = False
    enable_health_check_node_port: bool = False
    debug: bool = True


class ControllerOptions(BaseModel):
    """Controller configuration with the harness defaults applied."""
    model_config = ConfigDict(validate_assignment=True)

    ipam: IPAMMode = IPAMMode.KUBERNETES
    cluster_pool_ipv4_cidr: list[str] = Field(default_factory=lambda: ["10.0.0.0/8"])
    cluster_pool_ipv4_mask_size: int = Field(default=24, ge=1, le=32)
    enable_cilium_node_gc: bool = True
    debug: bool = False
