import html
import re
from datetime import datetime, timezone


def _safe_int(v) -> int:
    if isinstance(v, bool):
        return int(v)
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v)
    if isinstance(v, str):
        v = v.replace(",", "").replace("+", "").strip()
        if "亿" in v:
            v = v.replace("亿", "")
            try:
                return int(float(v) * 100000000)
            except ValueError:
                return 0
        if "万" in v:
            v = v.replace("万", "")
            try:
                return int(float(v) * 10000)
            except ValueError:
                return 0
        try:
            return int(float(v))
        except ValueError:
            return 0
    return 0


def _fmt_num(n: int) -> str:
    if n >= 100000000:
        return f"{n/100000000:.1f}亿"
    if n >= 10000:
        return f"{n/10000:.1f}万"
    return str(n)


def _ts_to_iso(ts) -> str:
    """Convert Unix timestamp to a UTC ISO string."""
    try:
        ts = int(ts)
        if ts > 0:
            return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()
    except (ValueError, TypeError, OSError, OverflowError):
        pass
    return ""


def _weibo_time_to_iso(value: str) -> str:
    """``Wed Jan 01 00:00:00 +0800 2025`` -> ISO; other formats pass through."""
    if not isinstance(value, str):
        return ""
    if not value or value[0].isdigit():
        return value
    try:
        return datetime.strptime(value, "%a %b %d %H:%M:%S %z %Y").isoformat()
    except ValueError:
        return value


def _strip_html(text: str) -> str:
    text = re.sub(r"<br\s*/?>", "\n", text or "")
    text = re.sub(r"<[^>]+>", "", text)
    return html.unescape(text).strip()


def _first_url(node) -> str:
    """First entry of a ``{"url_list": [...]}`` node, or ``""``."""
    if not isinstance(node, dict):
        return ""
    for url in node.get("url_list") or []:
        if isinstance(url, str) and url:
            return url
    return ""
