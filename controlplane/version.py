"""
Mocked API discovery for a chosen cluster version.

The resource lists are what a discovery client would report for each mocked
version. They drive capability detection (e.g. whether EndpointSlices are
served as discovery.k8s.io/v1). The lists are not exhaustive; they grow as
processes need more.
"""

import logging
from dataclasses import dataclass

from pydantic import BaseModel, Field

from .errors import UnknownVersionError

logger = logging.getLogger(__name__)


class APIResource(BaseModel):
    name: str
    kind: str
    namespaced: bool = False


class APIResourceList(BaseModel):
    group_version: str
    resources: list[APIResource] = Field(default_factory=list)


class VersionInfo(BaseModel):
    major: str
    minor: str

    @property
    def git_version(self) -> str:
        return f"v{self.major}.{self.minor}.0"


@dataclass(frozen=True)
class Capabilities:
    endpoint_slice: bool
    endpoint_slice_v1: bool


CORE_V1_RESOURCES = APIResourceList(
    group_version="v1",
    resources=[
        APIResource(name="nodes", kind="Node"),
        APIResource(name="pods", kind="Pod", namespaced=True),
        APIResource(name="services", kind="Service", namespaced=True),
        APIResource(name="endpoints", kind="Endpoints", namespaced=True),
        APIResource(name="namespaces", kind="Namespace"),
    ],
)

CILIUM_V2_RESOURCES = APIResourceList(
    group_version="cilium.io/v2",
    resources=[
        APIResource(name="ciliumnodes", kind="CiliumNode"),
        APIResource(name="ciliumendpoints", kind="CiliumEndpoint", namespaced=True),
        APIResource(name="ciliumidentities", kind="CiliumIdentity"),
        APIResource(name="ciliumegressgatewaypolicies", kind="CiliumEgressGatewayPolicy"),
        APIResource(name="ciliumnetworkpolicies", kind="CiliumNetworkPolicy", namespaced=True),
        APIResource(name="ciliumclusterwidenetworkpolicies", kind="CiliumClusterwideNetworkPolicy"),
        APIResource(name="ciliumlocalredirectpolicies", kind="CiliumLocalRedirectPolicy", namespaced=True),
        APIResource(name="ciliumexternalworkloads", kind="CiliumExternalWorkload"),
        APIResource(name="ciliumclusterwideenvoyconfigs", kind="CiliumClusterwideEnvoyConfig"),
        APIResource(name="ciliumenvoyconfigs", kind="CiliumEnvoyConfig", namespaced=True),
    ],
)

DISCOVERY_V1_RESOURCES = APIResourceList(
    group_version="discovery.k8s.io/v1",
    resources=[APIResource(name="endpointslices", kind="EndpointSlice", namespaced=True)],
)

DISCOVERY_V1BETA1_RESOURCES = APIResourceList(
    group_version="discovery.k8s.io/v1beta1",
    resources=[APIResource(name="endpointslices", kind="EndpointSlice", namespaced=True)],
)

# discovery.k8s.io/v1beta1 stops being served in 1.25.
API_RESOURCES: dict[str, list[APIResourceList]] = {
    "1.23": [CORE_V1_RESOURCES, DISCOVERY_V1_RESOURCES, DISCOVERY_V1BETA1_RESOURCES, CILIUM_V2_RESOURCES],
    "1.24": [CORE_V1_RESOURCES, DISCOVERY_V1_RESOURCES, DISCOVERY_V1BETA1_RESOURCES, CILIUM_V2_RESOURCES],
    "1.25": [CORE_V1_RESOURCES, DISCOVERY_V1_RESOURCES, CILIUM_V2_RESOURCES],
}


def to_version_info(raw_version: str) -> VersionInfo:
    """Parse 'MAJOR.MINOR' into a VersionInfo."""
    parts = raw_version.split(".")
    if len(parts) < 2 or not all(part.isdigit() for part in parts[:2]):
        raise UnknownVersionError(
            f"k8s version {raw_version!r} is not of the form MAJOR.MINOR",
            details={"version": raw_version},
        )
    return VersionInfo(major=parts[0], minor=parts[1])


def api_resources_for(raw_version: str) -> list[APIResourceList]:
    """
    Return the mocked discovery resources for a version.

    Raises:
        UnknownVersionError: if the version has no mocked resource list.
    """
    resources = API_RESOURCES.get(raw_version)
    if resources is None:
        raise UnknownVersionError(
            f"k8s version {raw_version} not found in API resources. "
            f"Available: {sorted(API_RESOURCES)}",
            details={"version": raw_version},
        )
    return resources


def detect_capabilities(version: VersionInfo, resources: list[APIResourceList]) -> Capabilities:
    """Derive feature capabilities from the server version and served group versions."""
    served = {resource_list.group_version for resource_list in resources}
    minor = int(version.minor)
    capabilities = Capabilities(
        endpoint_slice=minor >= 17 and bool(
            served & {"discovery.k8s.io/v1", "discovery.k8s.io/v1beta1"}
        ),
        endpoint_slice_v1=minor >= 21 and "discovery.k8s.io/v1" in served,
    )
    logger.debug("detected capabilities for %s: %s", version.git_version, capabilities)
    return capabilities
