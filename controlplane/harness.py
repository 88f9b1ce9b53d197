"""
Harness Facade

ControlPlaneTest is the object a test drives. It owns the multi-variant
store, the lifecycle of the simulated agent and controller, and the
convergence checker, and exposes them as a fluent API:

    cpt = (
        ControlPlaneTest("worker-1", "1.24")
        .setup_environment(lambda agent, controller: setattr(agent, "enable_ipv6", False))
        .update_objects_from_file("testdata/nodes.yaml")
        .start_agent()
    )
    cpt.eventually(check_datapath)
    cpt.stop_agent()

Every failure raises a HarnessError subclass; nothing is retried except
through eventually().
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from .agent import start_agent
from .codec import unmarshal_list
from .config import HarnessConfig, load_harness_config
from .controller import start_controller
from .convergence import retry_up_to_duration
from .datapath import FakeDatapath
from .environment import Clients, Environment, MockFQDNProxy
from .errors import LifecycleError, TaskFailedError
from .lifecycle import LifecycleManager, ProcessHandle, ProcessKind, ProcessState
from .models import AnyObject, GroupVersionResource, KubeObject
from .options import AgentOptions, ControllerOptions
from .store import MultiVariantStore
from .tracker import ObjectTracker
from .version import api_resources_for, detect_capabilities, to_version_info

logger = logging.getLogger(__name__)

ModConfig = Callable[[AgentOptions, ControllerOptions], None]


class ControlPlaneTest:
    """Fluent test harness over a simulated control plane."""

    def __init__(self, node_name: str, k8s_version: str, config: Optional[HarnessConfig] = None):
        self.node_name = node_name
        self.k8s_version = k8s_version
        self.config = config or load_harness_config()
        self.version = to_version_info(k8s_version)
        self.api_resources = api_resources_for(k8s_version)

        self.store = MultiVariantStore.with_default_variants()
        self.clients = Clients(
            core=self.store.tracker("core"),
            slim=self.store.tracker("slim"),
            cilium=self.store.tracker("cilium"),
        )
        self.lifecycle = LifecycleManager()
        self.environment: Optional[Environment] = None
        self.datapath: Optional[FakeDatapath] = None

    def __enter__(self) -> "ControlPlaneTest":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Stop whatever is still running."""
        self.lifecycle.stop_all()
        self.datapath = None

    # =========================================================================
    # ENVIRONMENT
    # =========================================================================

    def setup_environment(self, mod_config: Optional[ModConfig] = None) -> "ControlPlaneTest":
        """
        Prepare the environment the processes will run in.

        Loads default agent and controller options, installs the mocked
        collaborators (DNS proxy, server version, discovery data), then calls
        mod_config to apply test-specific overrides.

        Raises:
            LifecycleError: if a process is running; it would keep the old environment.
        """
        running = self.lifecycle.running()
        if running:
            raise LifecycleError(
                "setup_environment() called while processes are running: "
                + ", ".join(kind.value for kind in running)
            )

        agent_options = AgentOptions()
        controller_options = ControllerOptions()
        self.environment = Environment(
            node_name=self.node_name,
            clients=self.clients,
            version=self.version,
            api_resources=self.api_resources,
            capabilities=detect_capabilities(self.version, self.api_resources),
            agent_options=agent_options,
            controller_options=controller_options,
            dns_proxy=MockFQDNProxy(),
            config=self.config,
        )

        if mod_config is not None:
            mod_config(agent_options, controller_options)

        logger.info(
            "environment ready for node %s on k8s %s", self.node_name, self.version.git_version
        )
        return self

    def _require_environment(self, caller: str) -> Environment:
        if self.environment is None:
            raise LifecycleError(f"{caller}() called before setup_environment()")
        return self.environment

    # =========================================================================
    # PROCESS LIFECYCLE
    # =========================================================================

    def start_agent(self) -> "ControlPlaneTest":
        env = self._require_environment("start_agent")

        def launcher() -> ProcessHandle:
            datapath, handle = start_agent(env)
            self.datapath = datapath
            return handle

        self.lifecycle.start(ProcessKind.AGENT, launcher)
        return self

    def stop_agent(self) -> "ControlPlaneTest":
        self.lifecycle.stop(ProcessKind.AGENT)
        self.datapath = None
        return self

    def start_controller(self) -> "ControlPlaneTest":
        env = self._require_environment("start_controller")
        self.lifecycle.start(ProcessKind.CONTROLLER, lambda: start_controller(env))
        return self

    def stop_controller(self) -> "ControlPlaneTest":
        self.lifecycle.stop(ProcessKind.CONTROLLER)
        return self

    def agent_state(self) -> ProcessState:
        return self.lifecycle.state(ProcessKind.AGENT)

    def controller_state(self) -> ProcessState:
        return self.lifecycle.state(ProcessKind.CONTROLLER)

    def wait_for_agent_sync(self) -> "ControlPlaneTest":
        return self._wait_for_sync(ProcessKind.AGENT)

    def wait_for_controller_sync(self) -> "ControlPlaneTest":
        return self._wait_for_sync(ProcessKind.CONTROLLER)

    def _wait_for_sync(self, kind: ProcessKind) -> "ControlPlaneTest":
        handle = self.lifecycle.handle(kind)
        if handle is None:
            raise LifecycleError(f"cannot wait for {kind.value} sync: {kind.value} is not running")
        return self.eventually(handle.ready.check)

    # =========================================================================
    # STORE
    # =========================================================================

    def update_objects(self, *objs: AnyObject) -> "ControlPlaneTest":
        self.store.update_objects(*objs)
        return self

    def delete_objects(self, *objs: AnyObject) -> "ControlPlaneTest":
        self.store.delete_objects(*objs)
        return self

    def update_objects_from_file(self, path: Union[str, Path]) -> "ControlPlaneTest":
        """Bulk-decode a multi-document YAML file and apply every object in it."""
        objs = unmarshal_list(Path(path).read_bytes())
        logger.debug("loaded %d objects from %s", len(objs), path)
        return self.update_objects(*objs)

    def get(self, gvr: GroupVersionResource, namespace: str, name: str) -> KubeObject:
        """
        Look an object up across all trackers; the first match in registry order wins.

        Raises:
            NotFoundError: if no tracker holds the object.
        """
        return self.store.get(gvr, namespace, name)

    def tracker(self, name: str) -> ObjectTracker:
        return self.store.tracker(name)

    # =========================================================================
    # ASSERTIONS
    # =========================================================================

    def eventually(self, check: Callable[[], object]) -> "ControlPlaneTest":
        """
        Poll check() until it stops raising, within the validation timeout.

        Raises:
            ConvergenceTimeoutError: with the last failure's message.
        """
        retry_up_to_duration(
            check, self.config.validation_timeout, self.config.initial_backoff
        )
        return self

    def execute(self, task: Callable[[], object]) -> "ControlPlaneTest":
        """
        Run task() once, without retry.

        Raises:
            TaskFailedError: if task() raises.
        """
        try:
            task()
        except Exception as exc:
            raise TaskFailedError(str(exc), details={"task": getattr(task, "__name__", repr(task))}) from exc
        return self
