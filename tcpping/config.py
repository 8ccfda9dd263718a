from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

DEFAULT_ENV_PREFIX = "TCP_PING_"


@dataclass
class AppConfig:
    env_prefix: str = DEFAULT_ENV_PREFIX
    log_level: str = "INFO"
    project_id: str = ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        env = os.environ if environ is None else environ
        return cls(
            log_level=env.get("LOG_LEVEL") or "INFO",
            project_id=env.get("PROJECT_ID", ""),
        )


def load_descriptors(environ: Mapping[str, str], prefix: str = DEFAULT_ENV_PREFIX) -> List[str]:
    """Collect target descriptors from every variable named ``<prefix>...``.

    Descriptors come back ordered by variable name; blank values are ignored.
    """
    descriptors: List[str] = []
    for name in sorted(environ):
        if not name.startswith(prefix):
            continue
        value = environ[name].strip()
        if value:
            descriptors.append(value)
    return descriptors
