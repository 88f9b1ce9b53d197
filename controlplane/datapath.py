"""
Fake datapath.

Records the node and load-balancing state the agent programs, so tests can
assert on what the agent derived from the store. Written by the agent thread
and read by the test thread, hence the lock.
"""

import threading
from typing import NamedTuple, Optional

from pydantic import BaseModel, Field


class ServiceID(NamedTuple):
    namespace: str
    name: str


class L3n4Addr(NamedTuple):
    ip: str
    port: int
    protocol: str = "TCP"


class NodeEntry(BaseModel):
    name: str
    addresses: list[str] = Field(default_factory=list)
    pod_cidrs: list[str] = Field(default_factory=list)


class ServiceEntry(BaseModel):
    id: ServiceID
    type: str
    frontends: list[L3n4Addr] = Field(default_factory=list)
    backends: list[L3n4Addr] = Field(default_factory=list)


class FakeDatapath:
    def __init__(self):
        self._lock = threading.Lock()
        self._nodes: dict[str, NodeEntry] = {}
        self._services: dict[ServiceID, ServiceEntry] = {}

    def replace_nodes(self, nodes: dict[str, NodeEntry]) -> None:
        with self._lock:
            self._nodes = dict(nodes)

    def replace_services(self, services: dict[ServiceID, ServiceEntry]) -> None:
        with self._lock:
            self._services = dict(services)

    def nodes(self) -> dict[str, NodeEntry]:
        with self._lock:
            return {name: entry.model_copy(deep=True) for name, entry in self._nodes.items()}

    def node(self, name: str) -> Optional[NodeEntry]:
        with self._lock:
            entry = self._nodes.get(name)
            return entry.model_copy(deep=True) if entry else None

    def services(self) -> dict[ServiceID, ServiceEntry]:
        with self._lock:
            return {sid: entry.model_copy(deep=True) for sid, entry in self._services.items()}

    def service(self, namespace: str, name: str) -> Optional[ServiceEntry]:
        with self._lock:
            entry = self._services.get(ServiceID(namespace, name))
            return entry.model_copy(deep=True) if entry else None
