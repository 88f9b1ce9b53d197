"""
Simulated Agent

A stand-in for the per-node agent. It reads the slim variant and writes the
cilium variant, the same split the real agent has:

- registers its own CiliumNode, with addresses (and, in kubernetes IPAM,
  pod CIDRs) taken from the slim Node of the same name
- mirrors Nodes and Services into the fake datapath, picking service
  backends from EndpointSlices or Endpoints depending on detected capabilities
- keeps one CiliumEndpoint per non-host-network Pod scheduled on its node

The networking logic is thin; the harness only needs
observable reactions to store mutations.
"""

import logging
from typing import Optional

from . import slim_types
from .cilium_types import (
    AddressPair,
    CiliumEndpoint,
    CiliumNode,
    CiliumNodeAddress,
    EndpointNetworking,
    EndpointStatus,
)
from .datapath import FakeDatapath, L3n4Addr, NodeEntry, ServiceEntry, ServiceID
from .environment import Environment
from .errors import NotFoundError
from .lifecycle import ProcessHandle, ProcessKind
from .models import (
    CILIUM_ENDPOINTS,
    CILIUM_NODES,
    ENDPOINT_SLICES_V1,
    ENDPOINT_SLICES_V1BETA1,
    ENDPOINTS,
    NODES,
    PODS,
    SERVICES,
    ObjectMeta,
)
from .options import IPAMMode
from .processes import launch

logger = logging.getLogger(__name__)

SERVICE_NAME_LABEL = "kubernetes.io/service-name"
TERMINAL_POD_PHASES = {"Succeeded", "Failed"}


class Agent:
    def __init__(self, env: Environment, datapath: FakeDatapath):
        self.env = env
        self.datapath = datapath
        self._clients = env.clients
        self._managed_endpoints: set[tuple[str, str]] = set()
        self._endpoint_ids: dict[tuple[str, str], int] = {}
        self._next_endpoint_id = 1

    def sync_once(self) -> None:
        """Run one reconciliation pass over the stores."""
        self._sync_nodes()
        self._sync_cilium_node()
        self._sync_services()
        self._sync_endpoints()

    # =========================================================================
    # NODES
    # =========================================================================

    def _sync_nodes(self) -> None:
        entries = {}
        for node in self._clients.slim.list(NODES):
            entries[node.metadata.name] = NodeEntry(
                name=node.metadata.name,
                addresses=[addr.address for addr in node.status.addresses],
                pod_cidrs=_node_pod_cidrs(node),
            )
        self.datapath.replace_nodes(entries)

    def _sync_cilium_node(self) -> None:
        node_name = self.env.node_name
        try:
            node: Optional[slim_types.Node] = self._clients.slim.get(NODES, "", node_name)
        except NotFoundError:
            node = None

        try:
            existing: Optional[CiliumNode] = self._clients.cilium.get(CILIUM_NODES, "", node_name)
        except NotFoundError:
            existing = None

        desired = existing.model_copy(deep=True) if existing else CiliumNode(
            metadata=ObjectMeta(name=node_name)
        )
        if node is not None:
            desired.spec.addresses = [
                CiliumNodeAddress(type=addr.type, ip=addr.address)
                for addr in node.status.addresses
            ]
            if self.env.agent_options.ipam == IPAMMode.KUBERNETES:
                desired.spec.ipam.pod_cidrs = _node_pod_cidrs(node)

        if existing is None:
            self._clients.cilium.add(desired)
            logger.info("agent registered CiliumNode %s", node_name)
        elif desired != existing:
            self._clients.cilium.update(desired)
            logger.debug("agent updated CiliumNode %s", node_name)

    # =========================================================================
    # SERVICES
    # =========================================================================

    def _sync_services(self) -> None:
        backends = self._collect_backends()
        entries = {}
        for service in self._clients.slim.list(SERVICES):
            frontends = [
                L3n4Addr(ip, port, protocol)
                for ip, port, protocol in slim_types.service_frontends(service)
            ]
            if not frontends:
                continue
            sid = ServiceID(service.metadata.namespace, service.metadata.name)
            entries[sid] = ServiceEntry(
                id=sid,
                type=service.spec.type,
                frontends=frontends,
                backends=sorted(set(backends.get(sid, []))),
            )
        self.datapath.replace_services(entries)

    def _collect_backends(self) -> dict[ServiceID, list[L3n4Addr]]:
        backends: dict[ServiceID, list[L3n4Addr]] = {}
        capabilities = self.env.capabilities
        if capabilities.endpoint_slice and self.env.agent_options.k8s_enable_endpoint_slice:
            gvr = ENDPOINT_SLICES_V1 if capabilities.endpoint_slice_v1 else ENDPOINT_SLICES_V1BETA1
            for eps in self._clients.slim.list(gvr):
                service_name = eps.metadata.labels.get(SERVICE_NAME_LABEL)
                if not service_name:
                    continue
                sid = ServiceID(eps.metadata.namespace, service_name)
                for endpoint in eps.endpoints:
                    if endpoint.conditions.ready is False:
                        continue
                    for address in endpoint.addresses:
                        for port in eps.ports:
                            if port.port is not None:
                                backends.setdefault(sid, []).append(
                                    L3n4Addr(address, port.port, port.protocol)
                                )
        else:
            for endpoints in self._clients.slim.list(ENDPOINTS):
                sid = ServiceID(endpoints.metadata.namespace, endpoints.metadata.name)
                for subset in endpoints.subsets:
                    for address in subset.addresses:
                        for port in subset.ports:
                            backends.setdefault(sid, []).append(
                                L3n4Addr(address.ip, port.port, port.protocol)
                            )
        return backends

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    def _sync_endpoints(self) -> None:
        desired: dict[tuple[str, str], CiliumEndpoint] = {}
        for pod in self._clients.slim.list(PODS):
            if pod.spec.node_name != self.env.node_name or pod.spec.host_network:
                continue
            if not pod.status.pod_ip or pod.status.phase in TERMINAL_POD_PHASES:
                continue
            key = (pod.metadata.namespace, pod.metadata.name)
            desired[key] = CiliumEndpoint(
                metadata=ObjectMeta(namespace=key[0], name=key[1]),
                status=EndpointStatus(
                    id=self._endpoint_id(key),
                    state="ready",
                    networking=EndpointNetworking(
                        addressing=[AddressPair(ipv4=pod.status.pod_ip)],
                        node=pod.status.host_ip,
                    ),
                ),
            )

        cilium = self._clients.cilium
        for key, cep in desired.items():
            try:
                existing = cilium.get(CILIUM_ENDPOINTS, *key)
            except NotFoundError:
                cilium.add(cep)
                logger.debug("agent created CiliumEndpoint %s/%s", *key)
            else:
                if existing.status != cep.status:
                    existing.status = cep.status
                    cilium.update(existing)
            self._managed_endpoints.add(key)

        for key in sorted(self._managed_endpoints - desired.keys()):
            try:
                cilium.delete(CILIUM_ENDPOINTS, *key)
                logger.debug("agent removed CiliumEndpoint %s/%s", *key)
            except NotFoundError:
                logger.debug("CiliumEndpoint %s/%s already gone", *key)
            self._managed_endpoints.discard(key)
            self._endpoint_ids.pop(key, None)

    def _endpoint_id(self, key: tuple[str, str]) -> int:
        if key not in self._endpoint_ids:
            self._endpoint_ids[key] = self._next_endpoint_id
            self._next_endpoint_id += 1
        return self._endpoint_ids[key]


def _node_pod_cidrs(node: slim_types.Node) -> list[str]:
    if node.spec.pod_cidrs:
        return list(node.spec.pod_cidrs)
    return [node.spec.pod_cidr] if node.spec.pod_cidr else []


def start_agent(env: Environment) -> tuple[FakeDatapath, ProcessHandle]:
    """
    Start the simulated agent against an environment.

    Raises:
        RuntimeError: if the mock DNS proxy has not been installed.
    """
    if env.dns_proxy is None:
        raise RuntimeError("DNS proxy not installed; call setup_environment() first")

    datapath = FakeDatapath()
    agent = Agent(env, datapath)
    env.dns_proxy.attach(env.node_name)
    handle = launch(
        ProcessKind.AGENT,
        agent,
        agent.sync_once,
        interval=env.config.sync_interval,
        stop_timeout=env.config.stop_timeout,
        on_teardown=lambda: env.dns_proxy.detach(env.node_name),
    )
    return datapath, handle
