"""Runtime settings read from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass

from ..core.subscription import BackpressurePolicy


@dataclass(slots=True)
class Settings:
    """Container for event stream settings."""

    heartbeat_enabled: bool = True
    heartbeat_interval: float = 1.0
    ping_interval: int = 15
    queue_policy: BackpressurePolicy = BackpressurePolicy.UNBOUNDED
    queue_maxsize: int = 1000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            heartbeat_enabled=_env_flag("EVENTSTREAM_HEARTBEAT", default=True),
            heartbeat_interval=_env_number("EVENTSTREAM_HEARTBEAT_INTERVAL", float, default=1.0),
            ping_interval=_env_number("EVENTSTREAM_PING_INTERVAL", int, default=15),
            queue_policy=_env_policy("EVENTSTREAM_QUEUE_POLICY"),
            queue_maxsize=_env_number("EVENTSTREAM_QUEUE_MAXSIZE", int, default=1000),
            log_level=os.getenv("EVENTSTREAM_LOG_LEVEL", "INFO").upper(),
        )

    @property
    def queue_limit(self) -> int | None:
        """Queue cap handed to the bus; ``None`` when the queue is unbounded."""

        if self.queue_policy is BackpressurePolicy.UNBOUNDED:
            return None
        return self.queue_maxsize


def _env_flag(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_number(name: str, kind: type[int] | type[float], *, default: int | float):
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = kind(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _env_policy(name: str) -> BackpressurePolicy:
    raw = os.getenv(name)
    if raw is None:
        return BackpressurePolicy.UNBOUNDED
    try:
        return BackpressurePolicy(raw.strip().lower())
    except ValueError as exc:
        choices = ", ".join(policy.value for policy in BackpressurePolicy)
        raise ValueError(f"{name} must be one of {choices}, got {raw!r}") from exc
