"""Client configuration for the Gemma REST API."""

from __future__ import annotations

import os
from dataclasses import dataclass

GEMMA_BASE_URL = "https://gemma.msl.ubc.ca/rest/v2"

# the API refuses pages larger than this
MAX_PAGE_SIZE = 100


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class GemmaConfig:
    """Options shared by every request a client makes."""

    base_url: str = GEMMA_BASE_URL
    ssl_verify: bool = True
    memoised: bool = False
    timeout: float = 30.0
    max_page_size: int = MAX_PAGE_SIZE
    user_agent: str = "gemma-rest/0.1 (python-requests)"
    username: str | None = None
    password: str | None = None

    @property
    def auth(self) -> tuple[str, str] | None:
        # basic auth only when both halves are present
        if self.username and self.password:
            return (self.username, self.password)
        return None

    @classmethod
    def from_env(cls) -> "GemmaConfig":
        """Build a config from GEMMA_* environment variables."""

        # Read optional settings with safe defaults.
        return cls(
            base_url=os.getenv("GEMMA_BASE_URL", GEMMA_BASE_URL),
            ssl_verify=_env_flag("GEMMA_SSL_VERIFY", True),
            memoised=_env_flag("GEMMA_MEMOISED", False),
            timeout=float(os.getenv("GEMMA_TIMEOUT", "30")),
            max_page_size=int(os.getenv("GEMMA_MAX_PAGE_SIZE", str(MAX_PAGE_SIZE))),
            username=os.getenv("GEMMA_USERNAME"),
            password=os.getenv("GEMMA_PASSWORD"),
        )
