import re
from urllib.parse import urlencode

from ..config import MOBILE_UA
from ..errors import ParseError, QueryError
from ..models import Credential, FetchRequest, PreparedRequest, ProviderParsed, RawResponse
from .base import ProviderAdapter

API_CONTAINER = "https://m.weibo.cn/api/container/getIndex"
API_STATUS = "https://m.weibo.cn/statuses/show"

# containerid of a user's weibo tab is this prefix + uid
USER_FEED_PREFIX = "107603"
CARD_TYPE_MBLOG = 9


class WeiboAdapter(ProviderAdapter):
    provider = "weibo"
    cookie_names = ("SUB", "SUBP", "_T_WM", "XSRF-TOKEN", "MLOGIN")
    required_cookies = ("SUB",)
    user_agent = MOBILE_UA
    query_kinds = {
        "user": "user",
        "uid": "user",
        "status": "status",
        "mblog": "status",
        "detail": "status",
        "container": "container",
        "lfid": "container",
        "topic": "container",
    }

    def parse_query(self, query: str) -> tuple[str, str]:
        q = (query or "").strip()
        if not q.startswith(("http://", "https://")):
            return self._split_query(q)
        m = re.search(r"containerid=([^&#]+)", q)
        if m:
            return "container", m.group(1)
        m = re.search(r"/(?:u|profile)/(\d+)", q)
        if m:
            return "user", m.group(1)
        for pattern in [r"/detail/(\w+)", r"/status/(\w+)", r"weibo\.com/\d+/(\w+)"]:
            m = re.search(pattern, q)
            if m:
                return "status", m.group(1)
        raise QueryError(f"微博: 无法从链接提取 ID: {q}", provider=self.provider)

    def build_request(self, request: FetchRequest, credential: Credential) -> PreparedRequest:
        self.check_credential(credential)
        kind, value = self.parse_query(request.query)
        if kind == "status":
            url = f"{API_STATUS}?{urlencode([('id', value)])}"
        else:
            containerid = f"{USER_FEED_PREFIX}{value}" if kind == "user" else value
            params = [("containerid", containerid)]
            if request.cursor:
                params.append(("since_id", request.cursor))
            url = f"{API_CONTAINER}?{urlencode(params)}"
        extra = {"Referer": "https://m.weibo.cn/", "X-Requested-With": "XMLHttpRequest"}
        xsrf = credential.cookies.get("XSRF-TOKEN")
        if xsrf:
            extra["X-XSRF-TOKEN"] = xsrf
        return PreparedRequest(method="GET", url=url, headers=self._headers(credential, extra))

    def parse_response(self, raw: RawResponse) -> ProviderParsed:
        data = self._decode(raw)
        if "ok" not in data:
            raise ParseError.missing_field(self.provider, "ok")
        if str(data["ok"]) != "1":
            raise ParseError.provider_error(self.provider, data["ok"], str(data.get("msg") or ""))

        body = data.get("data")
        if not isinstance(body, dict):
            raise ParseError.missing_field(self.provider, "data")

        if "/statuses/show" in raw.url:
            return ProviderParsed(provider=self.provider, kind="detail", items=[body])

        cards = body.get("cards")
        if not isinstance(cards, list):
            raise ParseError.missing_field(self.provider, "data.cards")
        items = []
        for card in cards:
            if not isinstance(card, dict):
                continue
            group = card.get("card_group")
            for c in (group if isinstance(group, list) else [card]):
                if isinstance(c, dict) and c.get("card_type") == CARD_TYPE_MBLOG and isinstance(c.get("mblog"), dict):
                    items.append(c["mblog"])

        info = body.get("cardlistInfo") or {}
        since_id = info.get("since_id") if isinstance(info, dict) else None
        cursor = str(since_id) if since_id else None
        return ProviderParsed(provider=self.provider, kind="feed", items=items,
                              cursor=cursor, has_more=cursor is not None)
