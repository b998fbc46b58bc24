from .auth import CookieStore, load_cookie_file, save_cookie_file
from .config import GatewayConfig
from .errors import (
    CredentialError,
    ErrorKind,
    FetchError,
    GatewayError,
    ParseError,
    QueryError,
)
from .fetcher import FetchOrchestrator
from .http import HttpGateway
from .media import extract
from .models import (
    Author,
    ContentItem,
    Credential,
    FetchRequest,
    FetchResult,
    FetchState,
    MediaRef,
    PreparedRequest,
    ProviderParsed,
    RawResponse,
    Stats,
)
from .normalize import normalize
from .providers import ADAPTERS, DouyinAdapter, WeiboAdapter, detect_provider, get_adapter

__version__ = "0.4.0"

__all__ = [
    "ADAPTERS",
    "Author",
    "ContentItem",
    "CookieStore",
    "Credential",
    "CredentialError",
    "DouyinAdapter",
    "ErrorKind",
    "FetchError",
    "FetchOrchestrator",
    "FetchRequest",
    "FetchResult",
    "FetchState",
    "GatewayConfig",
    "GatewayError",
    "HttpGateway",
    "MediaRef",
    "ParseError",
    "PreparedRequest",
    "ProviderParsed",
    "QueryError",
    "RawResponse",
    "Stats",
    "WeiboAdapter",
    "detect_provider",
    "extract",
    "get_adapter",
    "load_cookie_file",
    "normalize",
    "save_cookie_file",
]
