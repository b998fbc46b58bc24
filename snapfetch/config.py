import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

MOBILE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_2 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.0 Mobile/15E148 Safari/604.1"
)

DESKTOP_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

TIMEOUT = float(os.getenv("SNAPFETCH_TIMEOUT", "15.0"))
MAX_RETRIES = int(os.getenv("SNAPFETCH_MAX_RETRIES", "3"))
MAX_CONCURRENCY = int(os.getenv("SNAPFETCH_MAX_CONCURRENCY", "4"))
REQUEST_TIMEOUT = float(os.getenv("SNAPFETCH_REQUEST_TIMEOUT", "60.0"))
COOKIE_FILE = Path(os.getenv("SNAPFETCH_COOKIE_FILE", str(Path.home() / ".snapfetch" / "cookies.json")))

# Minimum seconds between two requests to the same provider.
MIN_INTERVALS = {
    "douyin": 2.0,
    "weibo": 0.5,
}


@dataclass
class GatewayConfig:
    timeout: float = TIMEOUT
    max_retries: int = MAX_RETRIES
    max_concurrency: int = MAX_CONCURRENCY
    request_timeout: Optional[float] = REQUEST_TIMEOUT
    acquire_timeout: Optional[float] = None
    backoff_base: float = 1.0
    backoff_max: float = 10.0
    jitter: float = 0.5
    min_intervals: Optional[dict] = None

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError("max_retries 至少为 1")
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency 至少为 1")
        if self.min_intervals is None:
            self.min_intervals = {}

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        return cls(
            timeout=float(os.getenv("SNAPFETCH_TIMEOUT", str(TIMEOUT))),
            max_retries=int(os.getenv("SNAPFETCH_MAX_RETRIES", str(MAX_RETRIES))),
            max_concurrency=int(os.getenv("SNAPFETCH_MAX_CONCURRENCY", str(MAX_CONCURRENCY))),
            request_timeout=float(os.getenv("SNAPFETCH_REQUEST_TIMEOUT", str(REQUEST_TIMEOUT))) or None,
            min_intervals=dict(MIN_INTERVALS),
        )
