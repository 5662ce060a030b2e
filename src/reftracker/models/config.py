"""Configuration model for reference tracker clients.

TrackerConfig selects the object store backend and the caller-side retry
limits. Values can be passed directly or read from REFTRACKER_* variables.
"""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "REFTRACKER_"


class TrackerConfig(BaseModel):
    """Client configuration for a ReferenceTracker."""

    db_path: str = ":memory:"
    db_url: Optional[str] = None
    pool: Optional[str] = None
    create_pool: bool = False
    max_retries: int = Field(default=5, ge=1)
    retry_min_wait: float = Field(default=0.01, ge=0)
    retry_max_wait: float = Field(default=1.0, ge=0)

    @classmethod
    def from_env(cls, **overrides: object) -> TrackerConfig:
        """Build a config from REFTRACKER_* environment variables.

        Explicit keyword overrides win over the environment. Unset variables
        fall back to the field defaults.
        """
        values: dict[str, object] = {}
        env_map = {
            "db_path": "DB",
            "db_url": "DB_URL",
            "pool": "POOL",
            "max_retries": "MAX_RETRIES",
        }
        for field_name, suffix in env_map.items():
            raw = os.environ.get(ENV_PREFIX + suffix)
            if raw:
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
