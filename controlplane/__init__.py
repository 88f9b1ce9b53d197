"""
Control-plane simulation harness.

Stands in for a live cluster API so the agent and controller processes can be
exercised in integration tests without a real backing cluster.
"""

from .harness import ControlPlaneTest

__all__ = ["ControlPlaneTest"]
