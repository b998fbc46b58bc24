"""
Cookie 凭证管理

CookieStore 只保存已经解码好的凭证，不做任何网络或文件访问。
Cookie 文件的读写由 load_cookie_file / save_cookie_file 负责（管理员流程）。

Cookie 文件格式（两种均可）:
    {"weibo": {"SUB": "xxx", "SUBP": "yyy"}}
    {"douyin": {"cookies": {"sessionid": "xxx"}, "expires_hint": "2026-01-01T00:00:00"}}
"""

import fcntl
import json
import logging
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from .errors import CredentialError, ErrorKind
from .models import Credential, cookie_header, parse_cookie_text

logger = logging.getLogger("snapfetch.auth")

__all__ = [
    "CookieStore",
    "cookie_header",
    "parse_cookie_text",
    "load_cookie_file",
    "save_cookie_file",
]


class CookieStore:
    def __init__(self, credentials: Optional[dict[str, Credential]] = None):
        self._data: dict[str, Credential] = {}
        self._write_lock = threading.Lock()
        for provider, cred in (credentials or {}).items():
            self.set(provider, cred)

    # ── public API ──────────────────────────────────────────

    def get(self, provider: str) -> Credential:
        cred = self._data.get(provider)
        if cred is None:
            raise CredentialError(f"{provider}: 未配置 cookie", kind=ErrorKind.CREDENTIAL_MISSING,
                                  provider=provider)
        return cred

    def set(self, provider: str, credential: Credential) -> None:
        """Store a copy of ``credential``, replacing any earlier one."""
        stored = Credential(provider=provider, cookies=dict(credential.cookies),
                            expires_at=credential.expires_at)
        with self._write_lock:
            self._data[provider] = stored
        logger.debug(f"{provider}: 已更新 cookie ({', '.join(stored.cookies)})")

    def set_cookie_text(self, provider: str, text: str, ttl: Optional[float] = None,
                        now: Optional[float] = None) -> Credential:
        expires_at = None
        if ttl is not None:
            expires_at = (time.time() if now is None else now) + ttl
        cred = Credential.from_cookie_text(provider, text, expires_at=expires_at)
        self.set(provider, cred)
        return self._data[provider]

    def remove(self, provider: str) -> None:
        with self._write_lock:
            self._data.pop(provider, None)

    def providers(self) -> list[str]:
        return sorted(self._data)

    @staticmethod
    def is_expired(credential: Credential, now: Optional[float] = None) -> bool:
        if credential.expires_at is None:
            return False
        return (time.time() if now is None else now) >= credential.expires_at

    def resolve(self, provider: str, now: Optional[float] = None,
                override: Optional[Credential] = None) -> Credential:
        """Credential for one fetch; an explicit override skips the expiry check."""
        if override is not None:
            return override
        cred = self.get(provider)
        if self.is_expired(cred, now):
            raise CredentialError(f"{provider}: cookie 已过期，请重新登录获取",
                                  kind=ErrorKind.CREDENTIAL_EXPIRED, provider=provider)
        return cred

    def is_authenticated(self, provider: str, required=(), now: Optional[float] = None) -> bool:
        cred = self._data.get(provider)
        if cred is None or self.is_expired(cred, now):
            return False
        return not cred.missing(required)


# ── cookie 文件 ─────────────────────────────────────────────


def _parse_expires(entry: dict) -> Optional[float]:
    hint = entry.get("expires_hint") or entry.get("expires_at")
    if isinstance(hint, (int, float)):
        return float(hint)
    if isinstance(hint, str) and hint:
        try:
            return datetime.fromisoformat(hint).timestamp()
        except ValueError:
            logger.warning(f"无法解析过期时间: {hint}")
    return None


def load_cookie_file(store: CookieStore, path) -> list[str]:
    """Load every provider entry of a cookie file into ``store``.

    Returns the provider ids that were loaded. A missing file loads nothing.
    """
    path = Path(path)
    if not path.exists():
        return []
    with open(path, "r", encoding="utf-8") as f:
        fcntl.flock(f.fileno(), fcntl.LOCK_SH)
        try:
            data = json.loads(f.read() or "{}")
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    if not isinstance(data, dict):
        raise ValueError(f"cookie 文件格式错误: {path}")

    loaded = []
    for provider, entry in data.items():
        if isinstance(entry, str):
            cookies, expires_at = parse_cookie_text(entry), None
        elif isinstance(entry, dict) and isinstance(entry.get("cookies"), dict):
            cookies, expires_at = entry["cookies"], _parse_expires(entry)
        elif isinstance(entry, dict):
            cookies, expires_at = entry, None
        else:
            logger.warning(f"{provider}: 忽略无法识别的 cookie 条目")
            continue
        cookies = {str(k): str(v) for k, v in cookies.items()}
        store.set(provider, Credential(provider=provider, cookies=cookies, expires_at=expires_at))
        loaded.append(provider)
    return loaded


def save_cookie_file(store: CookieStore, path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {}
    for provider in store.providers():
        cred = store.get(provider)
        entry = {"cookies": dict(cred.cookies),
                 "updated_at": datetime.now().isoformat(timespec="seconds")}
        if cred.expires_at is not None:
            entry["expires_hint"] = datetime.fromtimestamp(cred.expires_at).isoformat(timespec="seconds")
        data[provider] = entry
    with open(path, "w", encoding="utf-8") as f:
        fcntl.flock(f.fileno(), fcntl.LOCK_EX)
        try:
            f.write(json.dumps(data, ensure_ascii=False, indent=2))
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
