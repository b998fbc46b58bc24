from ..errors import ErrorKind, QueryError
from .base import ProviderAdapter
from .douyin import DouyinAdapter
from .weibo import WeiboAdapter

ADAPTERS: dict[str, type[ProviderAdapter]] = {
    "douyin": DouyinAdapter,
    "weibo": WeiboAdapter,
}

PROVIDER_NAMES = {
    "douyin": "抖音",
    "weibo": "微博",
}


def get_adapter(provider: str) -> ProviderAdapter:
    cls = ADAPTERS.get((provider or "").lower())
    if cls is None:
        raise QueryError(f"不支持的平台: {provider}", kind=ErrorKind.UNKNOWN_PROVIDER, provider=provider)
    return cls()


def detect_provider(url: str) -> str:
    if not isinstance(url, str) or not url.strip() or not url.startswith(("http://", "https://")):
        raise ValueError(f"无效URL: {url}")
    u = url.lower()
    if any(k in u for k in ["douyin.com", "iesdouyin.com"]):
        return "douyin"
    if any(k in u for k in ["weibo.com", "weibo.cn"]):
        return "weibo"
    raise ValueError(f"无法识别平台: {url}")


__all__ = [
    "ADAPTERS",
    "PROVIDER_NAMES",
    "ProviderAdapter",
    "DouyinAdapter",
    "WeiboAdapter",
    "get_adapter",
    "detect_provider",
]
