import re
from urllib.parse import urlencode, urlparse

from ..errors import ParseError, QueryError
from ..models import Credential, FetchRequest, PreparedRequest, ProviderParsed, RawResponse
from .base import ProviderAdapter

API_AWEME_POST = "https://www.douyin.com/aweme/v1/web/aweme/post/"
API_AWEME_DETAIL = "https://www.douyin.com/aweme/v1/web/aweme/detail/"

# Fixed web-client fingerprint expected by the aweme endpoints.
WEB_PARAMS = (
    ("device_platform", "webapp"),
    ("aid", "6383"),
    ("channel", "channel_pc_web"),
    ("cookie_enabled", "true"),
    ("platform", "PC"),
    ("pc_client_type", "1"),
    ("version_code", "170400"),
    ("version_name", "17.4.0"),
)
PAGE_SIZE = 18


class DouyinAdapter(ProviderAdapter):
    provider = "douyin"
    cookie_names = ("sessionid", "ttwid", "msToken")
    required_cookies = ("sessionid",)
    query_kinds = {
        "user": "user",
        "sec_uid": "user",
        "video": "video",
        "aweme": "video",
        "note": "video",
    }

    def parse_query(self, query: str) -> tuple[str, str]:
        q = (query or "").strip()
        if not q.startswith(("http://", "https://")):
            return self._split_query(q)
        m = re.search(r"sec_uid=([^&#]+)", q) or re.search(r"/user/([^?/#]+)", q)
        if m:
            return "user", m.group(1)
        m = re.search(r"/(?:video|note)/(\d+)", q) or re.search(r"modal_id=(\d+)", q)
        if m:
            return "video", m.group(1)
        if urlparse(q).netloc == "v.douyin.com":
            raise QueryError(f"抖音: 短链接需先解析为完整链接: {q}", provider=self.provider)
        raise QueryError(f"抖音: 无法从链接提取 ID: {q}", provider=self.provider)

    def build_request(self, request: FetchRequest, credential: Credential) -> PreparedRequest:
        self.check_credential(credential)
        kind, value = self.parse_query(request.query)
        params = list(WEB_PARAMS)
        if kind == "user":
            params += [("sec_user_id", value), ("max_cursor", request.cursor or "0"),
                       ("count", str(PAGE_SIZE))]
            url, referer = API_AWEME_POST, f"https://www.douyin.com/user/{value}"
        else:
            params.append(("aweme_id", value))
            url, referer = API_AWEME_DETAIL, f"https://www.douyin.com/video/{value}"
        ms_token = credential.cookies.get("msToken")
        if ms_token:
            params.append(("msToken", ms_token))
        headers = self._headers(credential, {"Referer": referer})
        return PreparedRequest(method="GET", url=f"{url}?{urlencode(params)}", headers=headers)

    def parse_response(self, raw: RawResponse) -> ProviderParsed:
        data = self._decode(raw)
        if "status_code" not in data:
            raise ParseError.missing_field(self.provider, "status_code")
        code = data["status_code"]
        if str(code) != "0":
            raise ParseError.provider_error(self.provider, code, str(data.get("status_msg") or ""))

        if "/aweme/detail/" in raw.url:
            detail = data.get("aweme_detail")
            if detail is None:
                raise ParseError.missing_field(self.provider, "aweme_detail")
            if not isinstance(detail, dict):
                raise ParseError("抖音: aweme_detail 数据格式异常", provider=self.provider)
            return ProviderParsed(provider=self.provider, kind="detail", items=[detail])

        if "aweme_list" not in data:
            raise ParseError.missing_field(self.provider, "aweme_list")
        items = data["aweme_list"] or []
        if not isinstance(items, list):
            raise ParseError("抖音: aweme_list 数据格式异常", provider=self.provider)
        has_more = bool(data.get("has_more"))
        max_cursor = data.get("max_cursor")
        cursor = str(max_cursor) if has_more and max_cursor else None
        return ProviderParsed(provider=self.provider, kind="feed", items=items,
                              cursor=cursor, has_more=has_more)
