import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

VALIDATION_TIMEOUT_ENV = "CONTROLPLANE_VALIDATION_TIMEOUT"
INITIAL_BACKOFF_ENV = "CONTROLPLANE_INITIAL_BACKOFF"
SYNC_INTERVAL_ENV = "CONTROLPLANE_SYNC_INTERVAL"
STOP_TIMEOUT_ENV = "CONTROLPLANE_STOP_TIMEOUT"


class HarnessConfig(BaseModel):
    """Timing parameters for one harness instance, in seconds."""
    validation_timeout: float = Field(default=10.0, gt=0, description="Deadline for eventually()")
    initial_backoff: float = Field(default=0.05, gt=0, description="First eventually() poll interval")
    sync_interval: float = Field(default=0.05, gt=0, description="Pause between process sync passes")
    stop_timeout: float = Field(default=2.0, gt=0, description="Max wait for a process thread on stop")


def _read_seconds(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {raw!r}")
    return value


def load_harness_config() -> HarnessConfig:
    """
    Build a HarnessConfig from the environment (and a .env file, if present).

    Raises:
        RuntimeError: if a variable is set but is not a positive number.
    """
    defaults = HarnessConfig()
    return HarnessConfig(
        validation_timeout=_read_seconds(VALIDATION_TIMEOUT_ENV, defaults.validation_timeout),
        initial_backoff=_read_seconds(INITIAL_BACKOFF_ENV, defaults.initial_backoff),
        sync_interval=_read_seconds(SYNC_INTERVAL_ENV, defaults.sync_interval),
        stop_timeout=_read_seconds(STOP_TIMEOUT_ENV, defaults.stop_timeout),
    )
