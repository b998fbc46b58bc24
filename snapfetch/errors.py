"""Classified failures raised by the fetching core.

Every failure carries ``kind`` and ``provider`` so the host can render a
meaningful message without inspecting exception types.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    CREDENTIAL_MISSING = "credential_missing"
    CREDENTIAL_EXPIRED = "credential_expired"
    TIMEOUT = "timeout"
    CONNECTION_FAILED = "connection_failed"
    HTTP_STATUS = "http_status"
    RETRIES_EXHAUSTED = "retries_exhausted"
    UNEXPECTED_SHAPE = "unexpected_shape"
    MISSING_FIELD = "missing_field"
    PROVIDER_ERROR = "provider_error"
    INVALID_QUERY = "invalid_query"
    UNKNOWN_PROVIDER = "unknown_provider"


class FetchError(Exception):
    """Base class for all classified failures."""

    kind: ErrorKind = ErrorKind.UNEXPECTED_SHAPE

    def __init__(self, message: str, *, kind: Optional[ErrorKind] = None, provider: str = ""):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.provider = provider

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "provider": self.provider, "message": str(self)}


class CredentialError(FetchError):
    kind = ErrorKind.CREDENTIAL_MISSING


class GatewayError(FetchError):
    kind = ErrorKind.CONNECTION_FAILED

    def __init__(self, message: str, *, kind: Optional[ErrorKind] = None, provider: str = "",
                 status: Optional[int] = None, attempts: int = 0, transient: Optional[bool] = None):
        super().__init__(message, kind=kind, provider=provider)
        self.status = status
        self.attempts = attempts
        self._transient = transient

    @property
    def transient(self) -> bool:
        if self._transient is not None:
            return self._transient
        if self.kind in (ErrorKind.TIMEOUT, ErrorKind.CONNECTION_FAILED):
            return True
        if self.kind == ErrorKind.HTTP_STATUS and self.status is not None:
            return self.status in (408, 429) or self.status >= 500
        return False


class ParseError(FetchError):
    kind = ErrorKind.UNEXPECTED_SHAPE

    def __init__(self, message: str, *, kind: Optional[ErrorKind] = None, provider: str = "",
                 field: str = "", code=None, provider_message: str = ""):
        super().__init__(message, kind=kind, provider=provider)
        self.field = field
        self.code = code
        self.provider_message = provider_message

    @classmethod
    def missing_field(cls, provider: str, name: str) -> "ParseError":
        return cls(f"{provider}: 缺少字段 {name}", kind=ErrorKind.MISSING_FIELD,
                   provider=provider, field=name)

    @classmethod
    def provider_error(cls, provider: str, code, message: str = "") -> "ParseError":
        return cls(f"{provider}: 接口返回错误 code={code} {message}".rstrip(),
                   kind=ErrorKind.PROVIDER_ERROR, provider=provider,
                   code=code, provider_message=message)


class QueryError(FetchError):
    kind = ErrorKind.INVALID_QUERY
