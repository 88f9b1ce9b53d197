"""
Per-harness environment handed to the simulated processes.

Bundles everything a process needs at start: its client handles (the
trackers), the mocked server version and discovery data, the option
structures, and the mocked collaborators. One Environment exists per harness
instance; no option state is shared between harnesses.
"""

import logging
import threading
from dataclasses import dataclass

from .config import HarnessConfig
from .options import AgentOptions, ControllerOptions
from .tracker import ObjectTracker
from .version import APIResourceList, Capabilities, VersionInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Clients:
    """Client handles: one tracker per schema variant."""
    core: ObjectTracker
    slim: ObjectTracker
    cilium: ObjectTracker


class MockFQDNProxy:
    """Stand-in for the DNS proxy; records which nodes attached to it."""

    def __init__(self):
        self._lock = threading.Lock()
        self._attached: set[str] = set()

    def attach(self, node_name: str) -> None:
        with self._lock:
            self._attached.add(node_name)
        logger.debug("mock DNS proxy attached for %s", node_name)

    def detach(self, node_name: str) -> None:
        with self._lock:
            self._attached.discard(node_name)

    def attached(self) -> set[str]:
        with self._lock:
            return set(self._attached)


@dataclass
class Environment:
    node_name: str
    clients: Clients
    version: VersionInfo
    api_resources: list[APIResourceList]
    capabilities: Capabilities
    agent_options: AgentOptions
    controller_options: ControllerOptions
    dns_proxy: MockFQDNProxy
    config: HarnessConfig
