from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8888"
DEFAULT_FUNCTIONS_PREFIX = "/.netlify/functions"
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 1.5
DEFAULT_REDISPATCH_STATUSES: Tuple[str, ...] = ("captured",)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def _parse_statuses(raw: Optional[str]) -> Tuple[str, ...]:
    if raw is None:
        return DEFAULT_REDISPATCH_STATUSES
    return tuple(part.strip().lower() for part in raw.split(",") if part.strip())


@dataclass
class ScanClientConfig:
    """
    Connection and pacing settings for the scan client.

    Values come from explicit arguments first, then from the environment
    (a local ``.env`` file is loaded if present), then from defaults.
    """

    api_url: str = DEFAULT_API_URL
    functions_prefix: str = DEFAULT_FUNCTIONS_PREFIX
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    redispatch_statuses: Tuple[str, ...] = field(
        default_factory=lambda: DEFAULT_REDISPATCH_STATUSES
    )

    def __post_init__(self) -> None:
        self.api_url = (self.api_url or DEFAULT_API_URL).rstrip("/")
        prefix = (self.functions_prefix or "").strip()
        if prefix and not prefix.startswith("/"):
            prefix = "/" + prefix
        self.functions_prefix = prefix.rstrip("/")

    @classmethod
    def from_env(
        cls,
        *,
        api_url: Optional[str] = None,
        http_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> "ScanClientConfig":
        load_dotenv()
        return cls(
            api_url=api_url or os.getenv("SOWHAT_API_URL") or DEFAULT_API_URL,
            functions_prefix=os.getenv("SOWHAT_FUNCTIONS_PREFIX", DEFAULT_FUNCTIONS_PREFIX),
            http_timeout=(
                http_timeout
                if http_timeout is not None
                else _env_float("SOWHAT_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT)
            ),
            poll_interval=(
                poll_interval
                if poll_interval is not None
                else _env_float("SOWHAT_POLL_INTERVAL", DEFAULT_POLL_INTERVAL)
            ),
            redispatch_statuses=_parse_statuses(os.getenv("SOWHAT_REDISPATCH_STATUSES")),
        )

    def function_path(self, name: str) -> str:
        """Path of a serverless function relative to ``api_url``."""
        return f"{self.functions_prefix}/{name.lstrip('/')}"
