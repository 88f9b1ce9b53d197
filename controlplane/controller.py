"""
Simulated Controller

A stand-in for the cluster-wide controller. Each pass:

1. In cluster-pool IPAM, allocates a pod CIDR to every CiliumNode that
   has none, carving fixed-size blocks out of the configured pools.
2. With node GC enabled, deletes CiliumNodes whose core Node was seen
   earlier and has since been removed. CiliumNodes without a core Node that
   was ever observed are left alone.

An exhausted pool crashes the controller, like any other unexpected failure.
"""

import ipaddress
import logging
from typing import Optional

from .environment import Environment
from .lifecycle import ProcessHandle, ProcessKind
from .models import CILIUM_NODES, NODES
from .options import IPAMMode
from .processes import launch

logger = logging.getLogger(__name__)


class PoolExhaustedError(RuntimeError):
    pass


class PodCIDRAllocator:
    """Hands out fixed-size IPv4 blocks from a list of pools, one per node."""

    def __init__(self, pools: list[str], mask_size: int):
        self._networks = [ipaddress.ip_network(pool) for pool in pools]
        for network in self._networks:
            if mask_size < network.prefixlen:
                raise ValueError(
                    f"mask size /{mask_size} is larger than pool {network}"
                )
        self._mask_size = mask_size
        self._by_node: dict[str, str] = {}

    def occupy(self, node_name: str, cidr: str) -> None:
        """Record a CIDR already assigned before this allocator existed."""
        self._by_node[node_name] = str(ipaddress.ip_network(cidr))

    def allocate(self, node_name: str) -> str:
        if node_name in self._by_node:
            return self._by_node[node_name]
        taken = set(self._by_node.values())
        for network in self._networks:
            for subnet in network.subnets(new_prefix=self._mask_size):
                cidr = str(subnet)
                if cidr not in taken:
                    self._by_node[node_name] = cidr
                    return cidr
        raise PoolExhaustedError(
            f"no free /{self._mask_size} left in {[str(n) for n in self._networks]}"
        )

    def release(self, node_name: str) -> Optional[str]:
        return self._by_node.pop(node_name, None)

    def allocations(self) -> dict[str, str]:
        return dict(self._by_node)


class Controller:
    def __init__(self, env: Environment):
        self.env = env
        self._clients = env.clients
        self._seen_nodes: set[str] = set()

        options = env.controller_options
        self.allocator: Optional[PodCIDRAllocator] = None
        if options.ipam == IPAMMode.CLUSTER_POOL:
            self.allocator = PodCIDRAllocator(
                options.cluster_pool_ipv4_cidr, options.cluster_pool_ipv4_mask_size
            )
            for cilium_node in self._clients.cilium.list(CILIUM_NODES):
                for cidr in cilium_node.spec.ipam.pod_cidrs[:1]:
                    self.allocator.occupy(cilium_node.metadata.name, cidr)

    def sync_once(self) -> None:
        """Run one reconciliation pass over the stores."""
        core_nodes = {node.metadata.name for node in self._clients.core.list(NODES)}
        self._seen_nodes |= core_nodes

        for cilium_node in self._clients.cilium.list(CILIUM_NODES):
            name = cilium_node.metadata.name
            if self._should_collect(name, core_nodes):
                self._clients.cilium.delete(CILIUM_NODES, "", name)
                self._seen_nodes.discard(name)
                if self.allocator is not None:
                    self.allocator.release(name)
                logger.info("controller garbage collected CiliumNode %s", name)
                continue

            if self.allocator is not None and not cilium_node.spec.ipam.pod_cidrs:
                cidr = self.allocator.allocate(name)
                cilium_node.spec.ipam.pod_cidrs = [cidr]
                self._clients.cilium.update(cilium_node)
                logger.info("controller allocated %s to CiliumNode %s", cidr, name)

    def _should_collect(self, name: str, core_nodes: set[str]) -> bool:
        return (
            self.env.controller_options.enable_cilium_node_gc
            and name in self._seen_nodes
            and name not in core_nodes
        )


def start_controller(env: Environment) -> ProcessHandle:
    controller = Controller(env)
    return launch(
        ProcessKind.CONTROLLER,
        controller,
        controller.sync_once,
        interval=env.config.sync_interval,
        stop_timeout=env.config.stop_timeout,
    )
