import logging
import re
from urllib.parse import urlparse

from .models import ContentItem, MediaRef

logger = logging.getLogger("snapfetch.media")

# Equivalent display height for quality tags that carry no number.
QUALITY_RANK = {
    "largest": 4096,
    "original": 4000,
    "mw2000": 2000,
    "uhd": 2160,
    "fhd": 1080,
    "large": 1080,
    "hd": 720,
    "sd": 480,
    "bmiddle": 440,
    "ld": 360,
    "thumbnail": 180,
}


def _is_fetchable(url: str) -> bool:
    if not url or not url.strip():
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def resolution(ref: MediaRef) -> int:
    """Declared resolution of one variant, 0 when unknown."""
    if ref.height:
        return ref.height
    quality = (ref.quality or "").lower()
    m = re.search(r"(\d{3,4})p", quality) or re.search(r"(?:^|_)(\d{3,4})(?:_|$)", quality)
    if m:
        return int(m.group(1))
    return QUALITY_RANK.get(quality, 0)


def extract(item: ContentItem) -> list[MediaRef]:
    """Usable media of ``item``, best variant of each logical media first.

    Unfetchable URLs and repeated URLs are dropped. Logical groups keep the
    order they first appear in; inside a group higher resolution wins and
    ties keep first-seen order.
    """
    seen = set()
    groups: dict[str, list[MediaRef]] = {}
    for ref in item.media:
        if not _is_fetchable(ref.url):
            logger.debug(f"{item.provider}/{item.id}: 丢弃不可下载的媒体 {ref.url!r}")
            continue
        if ref.url in seen:
            continue
        seen.add(ref.url)
        groups.setdefault(ref.group or ref.url, []).append(ref)

    out = []
    for refs in groups.values():
        out.extend(sorted(refs, key=resolution, reverse=True))
    return out


def best(item: ContentItem) -> list[MediaRef]:
    """One preferred variant per logical media."""
    picked = {}
    for ref in extract(item):
        picked.setdefault(ref.group or ref.url, ref)
    return list(picked.values())
