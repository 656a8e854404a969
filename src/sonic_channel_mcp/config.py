"""Connection settings loaded from the environment or a ``.env`` file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

from .transport.tcp import DEFAULT_HOST, DEFAULT_PORT

ENV_PREFIX = "SONIC_"


@dataclass
class ChannelSettings:
    """Where and how to reach the Sonic server."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    password: str = "SecretPassword"
    timeout: float | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(
        cls,
        env_file: str | Path | None = None,
        environ: dict[str, str] | None = None,
    ) -> ChannelSettings:
        """Build settings from ``SONIC_*`` variables.

        Values in ``env_file`` (default ``.env`` in the working directory,
        if present) are overridden by the process environment.

        Raises:
            ValueError: If ``SONIC_PORT`` or ``SONIC_TIMEOUT`` is not a number.
        """
        path = Path(env_file) if env_file is not None else Path(".env")
        values: dict[str, str] = {}
        if path.is_file():
            values.update(
                {k: v for k, v in dotenv_values(path).items() if v is not None}
            )
        values.update(os.environ if environ is None else environ)

        settings = cls()
        if f"{ENV_PREFIX}HOST" in values:
            settings.host = values[f"{ENV_PREFIX}HOST"]
        if f"{ENV_PREFIX}PORT" in values:
            settings.port = _parse_port(values[f"{ENV_PREFIX}PORT"])
        if f"{ENV_PREFIX}PASSWORD" in values:
            settings.password = values[f"{ENV_PREFIX}PASSWORD"]
        if values.get(f"{ENV_PREFIX}TIMEOUT"):
            settings.timeout = _parse_timeout(values[f"{ENV_PREFIX}TIMEOUT"])
        if f"{ENV_PREFIX}LOG_LEVEL" in values:
            settings.log_level = values[f"{ENV_PREFIX}LOG_LEVEL"].upper()
        return settings


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}PORT must be an integer, got {raw!r}") from None
    if not 0 < port <= 65535:
        raise ValueError(f"{ENV_PREFIX}PORT must be 1-65535, got {port}")
    return port


def _parse_timeout(raw: str) -> float:
    try:
        timeout = float(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}TIMEOUT must be a number, got {raw!r}") from None
    if timeout <= 0:
        raise ValueError(f"{ENV_PREFIX}TIMEOUT must be positive, got {timeout}")
    return timeout
