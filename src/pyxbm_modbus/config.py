"""PanelConfig: endpoint, timing and session defaults for the lamp panel."""

from dataclasses import dataclass, replace
from typing import Any

DEFAULT_HOST = "192.168.0.2"
DEFAULT_PORT = 502


@dataclass(frozen=True)
class PanelConfig:
    """Connection and timing settings. All durations are in seconds."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    unit_id: int = 0
    connect_timeout: float = 2.0
    poll_interval: float = 0.1
    session_seconds: float = 15.0
    watchdog_tick: float = 1.0
    auto_poll: bool = True

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("host must not be empty")
        if not 0 < self.port <= 65535:
            raise ValueError(f"port must be in 1..65535, got {self.port}")
        if not 0 <= self.unit_id <= 255:
            raise ValueError(f"unit_id must be in 0..255, got {self.unit_id}")
        for name in ("connect_timeout", "poll_interval", "session_seconds", "watchdog_tick"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    def with_overrides(self, **overrides: Any) -> "PanelConfig":
        """Return a copy with the given fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
