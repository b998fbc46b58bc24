import argparse
import asyncio
import json
import logging
import sys

from .auth import CookieStore, load_cookie_file
from .config import COOKIE_FILE, GatewayConfig
from .errors import FetchError
from .fetcher import FetchOrchestrator
from .http import HttpGateway
from .models import ContentItem, Credential, FetchRequest, FetchResult
from .providers import ADAPTERS, PROVIDER_NAMES, detect_provider
from .utils import _fmt_num

logger = logging.getLogger("snapfetch")


def format_brief(item: ContentItem) -> str:
    """One-line brief summary."""
    pname = PROVIDER_NAMES.get(item.provider, item.provider)
    title = (item.title or item.text[:60]).replace("\n", " ")[:60]
    s = item.stats
    parts = [f"[{pname}]", f"@{item.author.nickname}", f'"{title}"']
    stats = []
    if s.views:  stats.append(f"▶{_fmt_num(s.views)}")
    if s.likes:  stats.append(f"❤{_fmt_num(s.likes)}")
    if s.comments: stats.append(f"💬{_fmt_num(s.comments)}")
    if stats:
        parts.append(" ".join(stats))
    return " | ".join(parts)


def format_result(result: FetchResult) -> str:
    if result.error is not None:
        return f"❌ [{result.error.kind.value}] {result.error}"
    lines = []
    for item in result.items:
        lines.append(format_brief(item))
        for ref in item.media:
            quality = f" {ref.quality}" if ref.quality else ""
            lines.append(f"    {ref.kind}{quality}: {ref.url}")
    for w in result.warnings:
        lines.append(f"⚠️  {w}")
    if result.cursor:
        lines.append(f"下一页: --cursor {result.cursor}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snapfetch",
        description="snapfetch - 抖音 / 微博内容与媒体获取",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  snapfetch douyin user:MS4wLjABAAAA... --cookie "sessionid=xxx"
  snapfetch weibo user:1234567890 --cookie "SUB=xxx; SUBP=yyy" --json
  snapfetch auto "https://m.weibo.cn/detail/4900000000000000"
""",
    )
    parser.add_argument("provider", choices=["auto", *ADAPTERS], help="平台 (auto=根据链接识别)")
    parser.add_argument("query", help="user:<id> / video:<id> / status:<id> / container:<id> 或分享链接")
    parser.add_argument("--cookie", help="cookie 文本，如 \"sessionid=xxx; ttwid=yyy\"")
    parser.add_argument("--cookie-file", default=str(COOKIE_FILE), help="cookie 文件路径")
    parser.add_argument("--cursor", help="分页游标")
    parser.add_argument("--json", "-j", action="store_true", help="JSON 格式输出")
    parser.add_argument("--verbose", "-v", action="store_true", help="详细日志")
    return parser


async def _run(args) -> FetchResult:
    provider = args.provider
    if provider == "auto":
        provider = detect_provider(args.query)

    store = CookieStore()
    load_cookie_file(store, args.cookie_file)
    override = Credential.from_cookie_text(provider, args.cookie) if args.cookie else None

    async with HttpGateway(GatewayConfig.from_env()) as gateway:
        fetcher = FetchOrchestrator(store, gateway)
        return await fetcher.fetch(FetchRequest(
            provider=provider, query=args.query, credential=override, cursor=args.cursor,
        ))


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
    if args.verbose:
        logger.setLevel(logging.DEBUG)

    try:
        result = asyncio.run(_run(args))
    except (FetchError, ValueError, OSError) as e:
        # CLI catches errors and prints friendly message.
        print(f"ERROR: {e}", file=sys.stderr)
        raise SystemExit(1)

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(format_result(result))
    if not result.ok:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
