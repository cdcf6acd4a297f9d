"""Application configuration.

``AppConfig`` is frozen. Build one directly, or from ``LIVETRAIN_*``
environment variables with ``AppConfig.from_env()``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path

_ENV_PREFIX = "LIVETRAIN_"


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, secret_key="s3cr3t")
    """

    debug: bool = False

    # Security
    secret_key: str = ""

    # Persistence
    database_url: str | None = None
    migrations_dir: str | Path | None = None

    # Navigation targets used by the join redirect
    login_url: str = "/auth"
    session_detail_url: str = "/session/{session_id}"
    not_found_url: str = "/catalog"
    upcoming_sessions_url: str = "/upcoming-sessions"

    # Enrollment check endpoint (client side)
    enrollment_check_base_url: str = "http://127.0.0.1:8000"
    enrollment_check_timeout: float = 5.0

    # Limits
    max_content_length: int = 1024 * 1024  # 1 MB

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> AppConfig:
        """Build a config from ``LIVETRAIN_*`` environment variables.

        ``LIVETRAIN_SECRET_KEY`` sets ``secret_key``,
        ``LIVETRAIN_DEBUG=1`` sets ``debug`` and so on. Unknown variables
        are ignored; unset fields keep their defaults.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(f"{_ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            default = f.default
            if isinstance(default, bool):
                values[f.name] = raw.lower() in ("1", "true", "yes", "on")
            elif isinstance(default, int):
                values[f.name] = int(raw)
            elif isinstance(default, float):
                values[f.name] = float(raw)
            else:
                values[f.name] = raw
        return cls(**values)
