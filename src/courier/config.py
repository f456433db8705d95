"""Client settings."""

import os
from typing import Any, Optional

from pydantic import BaseModel, Field

DEFAULT_API_ROOT = "https://www.googleapis.com/pubsub/v1beta1"
DEFAULT_USER_AGENT = "courier/0.1.0"

ENV_PREFIX = "COURIER_"


class ClientSettings(BaseModel):
    """
    Settings for a courier client.

    ``request_timeout`` is passed to every HTTP request; None leaves the
    transport's own behaviour (no client-side timeout), which lets a
    blocking pull wait as long as the service holds it.
    """

    project: str
    api_root: str = DEFAULT_API_ROOT
    request_timeout: Optional[float] = Field(default=None, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    listen_idle_interval: float = Field(default=0.5, ge=0)
    listen_handoff_timeout: float = Field(default=0.1, gt=0)

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClientSettings":
        """
        Build settings from ``COURIER_*`` environment variables.

        Keyword arguments take precedence over the environment.
        """
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            raw = os.getenv(ENV_PREFIX + name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        values.update(overrides)
        return cls(**values)
