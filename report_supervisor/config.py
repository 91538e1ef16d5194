# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: Copyright contributors to the SAGE project

"""Configuration for the report engine supervisor."""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import asdict, dataclass, field
from typing import Any

# Environment variable pointing at the engine binary
ENGINE_PATH_ENV = "REPORT_ENGINE_PATH"


@dataclass
class SupervisorConfig:
    """Settings shared by the supervisor, query client and catalog.

    Attributes:
        engine_executable: Path to the engine binary. None means discover it.
        engine_name: Binary name looked up on PATH during discovery.
        host: Host name used in query URLs.
        port_range_low: First port tried when spawning an engine.
        port_range_high: End of the port range (exclusive).
        log_dir: Directory receiving one log file per engine.
        log_file_pattern: Log file name, formatted with ``port``.
        engine_timeout: Seconds passed to the engine as ``-timeout``.
        http_timeout: Total timeout of one HTTP query (seconds).
        stop_timeout: Grace period before force killing an engine (seconds).
        namespace: First path segment of the engine query endpoints.
        default_language: Language used when the caller gives none.
        metadata: Additional configuration.
    """

    engine_executable: str | None = None
    engine_name: str = "reqtify"
    host: str = "localhost"
    port_range_low: int = 4000
    port_range_high: int = 8000
    log_dir: str = field(default_factory=tempfile.gettempdir)
    log_file_pattern: str = "engineLog_{port}.log"
    engine_timeout: int = 30
    http_timeout: float = 60.0
    stop_timeout: float = 10.0
    namespace: str = "jenkins"
    default_language: str = "eng"
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0 < self.port_range_low < self.port_range_high <= 65536:
            raise ValueError(
                f"Invalid port range [{self.port_range_low}, {self.port_range_high})"
            )

    def log_path_for(self, port: int) -> str:
        return os.path.join(self.log_dir, self.log_file_pattern.format(port=port))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SupervisorConfig:
        """Deserialize from dictionary."""
        return cls(**data)

    @classmethod
    def default(cls) -> SupervisorConfig:
        """Create default configuration."""
        return cls()

    @classmethod
    def load_yaml(cls, path: str) -> SupervisorConfig:
        """Load configuration from a YAML file."""
        import yaml

        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    def save_yaml(self, path: str) -> None:
        """Save configuration to a YAML file."""
        import yaml

        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False)


def find_engine_executable(config: SupervisorConfig) -> str | None:
    """Locate the engine binary.

    Order: explicit config value, ``REPORT_ENGINE_PATH``, then PATH lookup.
    """
    if config.engine_executable:
        return config.engine_executable
    from_env = os.environ.get(ENGINE_PATH_ENV)
    if from_env:
        return from_env
    return shutil.which(config.engine_name)


__all__ = [
    "ENGINE_PATH_ENV",
    "SupervisorConfig",
    "find_engine_executable",
]
