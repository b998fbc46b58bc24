from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from .errors import ErrorKind, FetchError

# ─── 凭证 ──────────────────────────────────────────────────────────────────────


def parse_cookie_text(text: str) -> dict[str, str]:
    """Parse ``a=b; c=d`` cookie text, keeping the original order."""
    cookies: dict[str, str] = {}
    for part in (text or "").split(";"):
        name, sep, value = part.strip().partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        cookies[name] = value.strip()
    return cookies


def cookie_header(cookies: dict[str, str]) -> str:
    return "; ".join(f"{k}={v}" for k, v in cookies.items())


@dataclass(frozen=True)
class Credential:
    provider: str
    cookies: dict = field(default_factory=dict)
    expires_at: Optional[float] = None

    @classmethod
    def from_cookie_text(cls, provider: str, text: str, expires_at: Optional[float] = None) -> "Credential":
        return cls(provider=provider, cookies=parse_cookie_text(text), expires_at=expires_at)

    def missing(self, names) -> list[str]:
        return [n for n in names if not self.cookies.get(n)]


# ─── 请求 / 响应 ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FetchRequest:
    provider: str
    query: str
    credential: Optional[Credential] = None
    cursor: Optional[str] = None


@dataclass(frozen=True)
class PreparedRequest:
    method: str
    url: str
    headers: dict = field(default_factory=dict)
    body: Optional[bytes] = None


@dataclass(frozen=True)
class RawResponse:
    provider: str
    status: int
    body: bytes = b""
    headers: dict = field(default_factory=dict)
    url: str = ""
    attempts: int = 1

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass
class ProviderParsed:
    provider: str
    kind: str = "feed"  # feed / detail
    items: list[dict] = field(default_factory=list)
    cursor: Optional[str] = None
    has_more: bool = False


# ─── 归一化结果 ────────────────────────────────────────────────────────────────


@dataclass
class Author:
    nickname: str = ""
    uid: str = ""
    sec_uid: str = ""
    avatar: str = ""


@dataclass
class Stats:
    likes: int = 0
    comments: int = 0
    shares: int = 0
    reposts: int = 0
    views: int = 0


@dataclass
class MediaRef:
    url: str
    kind: str = "image"  # image / video
    quality: Optional[str] = None
    size: Optional[int] = None
    width: int = 0
    height: int = 0
    group: str = ""

    def __post_init__(self):
        if not isinstance(self.url, str) or not self.url.strip():
            raise ValueError("MediaRef: url 不能为空")
        parsed = urlparse(self.url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"MediaRef: 无效URL: {self.url}")
        if self.kind not in ("image", "video"):
            raise ValueError(f"MediaRef: 未知类型 {self.kind}")
        if not self.group:
            self.group = self.url


@dataclass
class ContentItem:
    id: str
    provider: str
    title: str = ""
    text: str = ""
    author: Author = field(default_factory=Author)
    stats: Stats = field(default_factory=Stats)
    media: list[MediaRef] = field(default_factory=list)
    created_at: str = ""
    url: str = ""
    tags: list[str] = field(default_factory=list)
    pinned: bool = False
    cursor: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class FetchState(str, Enum):
    IDLE = "idle"
    CREDENTIAL_RESOLVED = "credential_resolved"
    REQUEST_BUILT = "request_built"
    REQUEST_SENT = "request_sent"
    RESPONSE_PARSED = "response_parsed"
    NORMALIZED = "normalized"
    DONE = "done"
    ERRORED = "errored"


@dataclass
class FetchResult:
    provider: str
    items: list[ContentItem] = field(default_factory=list)
    cursor: Optional[str] = None
    error: Optional[FetchError] = None
    warnings: list[str] = field(default_factory=list)
    state: FetchState = FetchState.IDLE
    trace: list[FetchState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.items)

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "ok": self.ok,
            "items": [i.to_dict() for i in self.items],
            "cursor": self.cursor,
            "error": self.error.to_dict() if self.error is not None else None,
            "warnings": list(self.warnings),
        }
