"""
Runtime settings.

Values come from, in order of precedence:
- explicit arguments (CLI flags)
- environment variables WORKLOAD_DATA_DIR, WORKLOAD_ROLE, WORKLOAD_EMAIL
- defaults (data directory inside the package, Administrator, no identity)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from workload.notify import DEFAULT_DURATION_MS
from workload.permissions import Role
from workload.uploads import MAX_UPLOAD_BYTES


def _default_data_dir() -> Path:
    """
    Return the default directory for stored collections inside the package.

    A function instead of a constant, so tests can point elsewhere.
    """
    base_dir = Path(__file__).resolve().parent
    return base_dir / "data"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    role: Role = Role.ADMINISTRATOR
    identity: Optional[str] = None
    notification_ms: int = DEFAULT_DURATION_MS
    max_upload_bytes: int = MAX_UPLOAD_BYTES


def load_settings(
    data_dir: str | Path | None = None,
    role: str | None = None,
    email: str | None = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Build Settings from arguments, falling back to the environment.
    Raises ValueError for an unknown role.
    """
    env = os.environ if env is None else env

    dir_value = data_dir if data_dir is not None else env.get("WORKLOAD_DATA_DIR", "").strip()
    resolved_dir = Path(dir_value).expanduser() if dir_value else _default_data_dir()

    role_value = role if role is not None else env.get("WORKLOAD_ROLE", "").strip()
    resolved_role = Role.parse(role_value) if role_value else Role.ADMINISTRATOR

    identity = email if email is not None else env.get("WORKLOAD_EMAIL", "").strip()

    return Settings(data_dir=resolved_dir, role=resolved_role, identity=identity or None)
