import json
from abc import ABC, abstractmethod

from ..config import DESKTOP_UA
from ..errors import CredentialError, ErrorKind, ParseError, QueryError
from ..models import Credential, FetchRequest, PreparedRequest, ProviderParsed, RawResponse, cookie_header

PARSE_EXCEPTIONS = (
    json.JSONDecodeError,
    UnicodeDecodeError,
    ValueError,
)


class ProviderAdapter(ABC):
    """Base class for all provider adapters.

    ``build_request`` must be deterministic: identical request and credential
    give an identical ``PreparedRequest``.
    """

    provider: str = ""
    cookie_names: tuple[str, ...] = ()
    required_cookies: tuple[str, ...] = ()
    user_agent: str = DESKTOP_UA
    query_kinds: dict[str, str] = {}

    @abstractmethod
    def parse_query(self, query: str) -> tuple[str, str]:
        """Split a logical query into ``(kind, value)``."""

    @abstractmethod
    def build_request(self, request: FetchRequest, credential: Credential) -> PreparedRequest:
        ...

    @abstractmethod
    def parse_response(self, raw: RawResponse) -> ProviderParsed:
        ...

    def check_credential(self, credential: Credential) -> None:
        missing = credential.missing(self.required_cookies)
        if missing:
            raise CredentialError(
                f"{self.provider}: cookie 缺少必需参数 {', '.join(missing)}",
                kind=ErrorKind.CREDENTIAL_MISSING,
                provider=self.provider,
            )

    def _split_query(self, query: str) -> tuple[str, str]:
        """Shared ``prefix:value`` handling; a bare value means a user id."""
        q = (query or "").strip()
        if not q:
            raise QueryError(f"{self.provider}: 查询不能为空", provider=self.provider)
        prefix, sep, value = q.partition(":")
        if not sep:
            return "user", q
        kind = self.query_kinds.get(prefix.strip().lower())
        value = value.strip()
        if kind is None:
            raise QueryError(f"{self.provider}: 不支持的查询类型 {prefix}", provider=self.provider)
        if not value:
            raise QueryError(f"{self.provider}: 查询 {prefix} 缺少 ID", provider=self.provider)
        return kind, value

    def _headers(self, credential: Credential, extra: dict) -> dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
        }
        headers.update(extra)
        if credential.cookies:
            headers["Cookie"] = cookie_header(credential.cookies)
        return headers

    def _decode(self, raw: RawResponse) -> dict:
        body = raw.body.strip()
        if not body:
            raise ParseError(f"{self.provider}: 空响应 (HTTP {raw.status})", provider=self.provider)
        try:
            data = json.loads(body)
        except PARSE_EXCEPTIONS as e:
            snippet = raw.text[:100]
            raise ParseError(f"{self.provider}: 返回非JSON格式响应: {snippet}",
                             provider=self.provider) from e
        if not isinstance(data, dict):
            raise ParseError(f"{self.provider}: 响应不是 JSON 对象", provider=self.provider)
        return data
