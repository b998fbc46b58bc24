"""
Provider items -> ContentItem

Pure mapping, no I/O. A malformed item (no id, no media, wrong types) is
skipped with a warning; the rest of the page is kept.
"""

import logging
import re
from typing import Callable, Optional

from .models import Author, ContentItem, MediaRef, ProviderParsed, Stats
from .utils import _first_url, _safe_int, _strip_html, _ts_to_iso, _weibo_time_to_iso

logger = logging.getLogger("snapfetch.normalize")

MAP_EXCEPTIONS = (
    AttributeError,
    KeyError,
    IndexError,
    TypeError,
    ValueError,
)

WEIBO_VIDEO_KEYS = (
    ("mp4_1080p_mp4", "1080p"),
    ("mp4_720p_mp4", "720p"),
    ("mp4_hd_mp4", "hd"),
    ("mp4_hd_url", "hd"),
    ("stream_url_hd", "hd"),
    ("mp4_ld_mp4", "ld"),
    ("mp4_sd_url", "sd"),
    ("stream_url", "sd"),
)

WEIBO_PIC_KEYS = ("largest", "original", "mw2000", "large", "bmiddle", "thumbnail")


def _ref(url, kind: str, group: str, quality=None, size=None, width=0, height=0) -> Optional[MediaRef]:
    if not isinstance(url, str) or not url:
        return None
    try:
        return MediaRef(
            url=url,
            kind=kind,
            quality=quality or None,
            size=_safe_int(size) or None,
            width=_safe_int(width),
            height=_safe_int(height),
            group=group,
        )
    except ValueError as e:
        logger.debug(f"忽略无效媒体: {e}")
        return None


def _dedupe(refs) -> list[MediaRef]:
    seen = set()
    out = []
    for r in refs:
        if r is None or r.url in seen:
            continue
        seen.add(r.url)
        out.append(r)
    return out


# ─── 抖音 ──────────────────────────────────────────────────────────────────────


def _douyin_media(aweme: dict) -> list[MediaRef]:
    refs = []
    images = aweme.get("images") or []
    if images:
        for idx, img in enumerate(images):
            refs.append(_ref(_first_url(img), "image", f"image:{idx}",
                             width=img.get("width", 0), height=img.get("height", 0)))
        return _dedupe(refs)

    video = aweme.get("video") or {}
    if not video:
        return []
    play_addr = video.get("play_addr") or {}
    height = _safe_int(play_addr.get("height") or video.get("height"))
    refs.append(_ref(
        _first_url(play_addr).replace("playwm", "play"), "video", "video",
        quality=f"{height}p" if height else None,
        size=play_addr.get("data_size"),
        width=play_addr.get("width") or video.get("width", 0),
        height=height,
    ))
    for br in video.get("bit_rate") or []:
        addr = br.get("play_addr") or {}
        refs.append(_ref(
            _first_url(addr), "video", "video",
            quality=br.get("gear_name"),
            size=addr.get("data_size"),
            width=addr.get("width", 0),
            height=addr.get("height", 0),
        ))
    return _dedupe(refs)


def _douyin_item(aweme: dict) -> ContentItem:
    aweme_id = str(aweme.get("aweme_id") or "")
    a = aweme.get("author") or {}
    stats_raw = aweme.get("statistics") or {}
    desc = aweme.get("desc", "") or ""
    path = "note" if aweme.get("images") else "video"
    return ContentItem(
        id=aweme_id,
        provider="douyin",
        title=desc[:100],
        text=desc,
        author=Author(
            nickname=a.get("nickname", ""),
            uid=str(a.get("uid", "") or a.get("short_id", "") or ""),
            sec_uid=a.get("sec_uid", ""),
            avatar=_first_url(a.get("avatar_thumb")),
        ),
        stats=Stats(
            likes=_safe_int(stats_raw.get("digg_count", 0)),
            comments=_safe_int(stats_raw.get("comment_count", 0)),
            shares=_safe_int(stats_raw.get("share_count", 0)),
            views=_safe_int(stats_raw.get("play_count", 0)),
        ),
        media=_douyin_media(aweme),
        created_at=_ts_to_iso(aweme.get("create_time", 0)),
        url=f"https://www.douyin.com/{path}/{aweme_id}" if aweme_id else "",
        tags=re.findall(r"#([\w\u4e00-\u9fff]+)", desc),
        pinned=bool(aweme.get("is_top")),
    )


# ─── 微博 ──────────────────────────────────────────────────────────────────────


def _weibo_pic_variants(pic: dict, group: str) -> list:
    refs = []
    for key in WEIBO_PIC_KEYS:
        node = pic.get(key)
        if isinstance(node, dict):
            geo = node.get("geo") or {}
            refs.append(_ref(node.get("url"), "image", group, quality=key,
                             width=node.get("width") or geo.get("width", 0),
                             height=node.get("height") or geo.get("height", 0)))
    if isinstance(pic.get("url"), str):
        refs.append(_ref(pic["url"], "image", group, quality="thumbnail"))
    return refs


def _weibo_video_variants(info: dict, group: str) -> list:
    refs = []
    for key, quality in WEIBO_VIDEO_KEYS:
        refs.append(_ref(info.get(key), "video", group, quality=quality))
    return refs


def _weibo_media(mblog: dict) -> list[MediaRef]:
    refs = []

    pics = mblog.get("pics")
    if isinstance(pics, list):
        for idx, pic in enumerate(pics):
            refs += _weibo_pic_variants(pic, f"pic:{pic.get('pid') or idx}")
    pic_infos = mblog.get("pic_infos")
    if isinstance(pic_infos, dict):
        order = mblog.get("pic_ids") or list(pic_infos)
        for pid in order:
            pic = pic_infos.get(pid)
            if isinstance(pic, dict):
                refs += _weibo_pic_variants(pic, f"pic:{pid}")

    mix = (mblog.get("mix_media_info") or {}).get("items") or []
    for idx, mm in enumerate(mix):
        data = mm.get("data") or {}
        group = f"mix:{mm.get('id') or idx}"
        if mm.get("type") == "pic":
            refs += _weibo_pic_variants(data, group)
        elif mm.get("type") == "video":
            refs += _weibo_video_variants(data.get("media_info") or {}, group)

    page_info = mblog.get("page_info") or {}
    if page_info.get("type") == "video" or page_info.get("object_type") == "video":
        group = f"video:{page_info.get('object_id') or page_info.get('page_id') or 0}"
        refs += _weibo_video_variants(page_info.get("urls") or {}, group)
        refs += _weibo_video_variants(page_info.get("media_info") or {}, group)

    media = _dedupe(refs)
    if not media and isinstance(mblog.get("retweeted_status"), dict):
        media = _weibo_media(mblog["retweeted_status"])
    return media


def _weibo_item(mblog: dict) -> ContentItem:
    weibo_id = str(mblog.get("id") or mblog.get("mid") or "")
    text_raw = mblog.get("text_raw", "") or mblog.get("text", "") or ""
    text = _strip_html(text_raw)
    user = mblog.get("user") or {}
    return ContentItem(
        id=weibo_id,
        provider="weibo",
        title=text[:100],
        text=text,
        author=Author(
            nickname=user.get("screen_name", "") or user.get("name", ""),
            uid=str(user.get("id", "") or user.get("idstr", "")),
            avatar=user.get("avatar_hd", "") or user.get("profile_image_url", ""),
        ),
        stats=Stats(
            reposts=_safe_int(mblog.get("reposts_count", 0)),
            comments=_safe_int(mblog.get("comments_count", 0)),
            likes=_safe_int(mblog.get("attitudes_count", 0)),
        ),
        media=_weibo_media(mblog),
        created_at=_weibo_time_to_iso(mblog.get("created_at", "")),
        url=f"https://m.weibo.cn/detail/{weibo_id}" if weibo_id else "",
        tags=re.findall(r"#([^#]+)#", text),
        pinned=bool(mblog.get("isTop")) or mblog.get("mblogtype") == 2,
    )


MAPPERS: dict[str, Callable[[dict], ContentItem]] = {
    "douyin": _douyin_item,
    "weibo": _weibo_item,
}


def normalize(parsed: ProviderParsed, warnings: Optional[list] = None) -> list[ContentItem]:
    """Map one parsed page onto ContentItems, keeping provider order.

    Skipped items are logged and, when ``warnings`` is given, described there.
    """
    mapper = MAPPERS.get(parsed.provider)
    if mapper is None:
        raise ValueError(f"没有 {parsed.provider} 的归一化规则")

    def _skip(idx: int, reason: str) -> None:
        msg = f"{parsed.provider}: 跳过第 {idx + 1} 条: {reason}"
        logger.warning(msg)
        if warnings is not None:
            warnings.append(msg)

    items = []
    for idx, raw in enumerate(parsed.items):
        if not isinstance(raw, dict):
            _skip(idx, "条目不是对象")
            continue
        try:
            item = mapper(raw)
        except MAP_EXCEPTIONS as e:
            _skip(idx, f"字段格式异常 ({type(e).__name__}: {e})")
            continue
        if not item.id:
            _skip(idx, "缺少 id")
            continue
        if not item.media:
            _skip(idx, f"{item.id} 没有媒体")
            continue
        item.cursor = parsed.cursor
        items.append(item)
    return items
