from urllib.parse import parse_qs, urlparse

import pytest

from snapfetch import (
    Credential,
    CredentialError,
    ErrorKind,
    FetchRequest,
    ParseError,
    ProviderParsed,
    QueryError,
    WeiboAdapter,
    normalize,
)
from snapfetch.config import MOBILE_UA


def _params(url: str) -> dict:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


@pytest.mark.unit
class Describe_WeiboQuery:
    @pytest.mark.parametrize("query,expected", [
        ("user:1234567890", ("user", "1234567890")),
        ("1234567890", ("user", "1234567890")),
        ("status:4950000000000010", ("status", "4950000000000010")),
        ("container:1076031234567890", ("container", "1076031234567890")),
        ("https://m.weibo.cn/u/1234567890", ("user", "1234567890")),
        ("https://weibo.com/u/1234567890", ("user", "1234567890")),
        ("https://m.weibo.cn/p/index?containerid=1076031234567890", ("container", "1076031234567890")),
        ("https://m.weibo.cn/detail/4950000000000010", ("status", "4950000000000010")),
        ("https://weibo.com/1234567890/Nabc123", ("status", "Nabc123")),
    ])
    def test_should_parse_queries(self, query, expected):
        """应能识别前缀查询、纯 ID 与各种链接。"""
        assert WeiboAdapter().parse_query(query) == expected

    @pytest.mark.parametrize("query", ["", "status:", "video:1", "https://weibo.com/hot"])
    def test_should_reject_bad_queries(self, query):
        with pytest.raises(QueryError) as ei:
            WeiboAdapter().parse_query(query)
        assert ei.value.kind == ErrorKind.INVALID_QUERY


@pytest.mark.unit
class Describe_WeiboBuildRequest:
    def test_should_build_user_feed_request(self):
        """用户查询应请求 107603 容器并注入 cookie。"""
        cred = Credential("weibo", {"SUB": "s", "SUBP": "p", "XSRF-TOKEN": "x"})
        prepared = WeiboAdapter().build_request(
            FetchRequest(provider="weibo", query="user:1234567890", cursor="4950000000000001"), cred)
        assert prepared.url.startswith("https://m.weibo.cn/api/container/getIndex?")
        params = _params(prepared.url)
        assert params["containerid"] == "1076031234567890"
        assert params["since_id"] == "4950000000000001"
        assert prepared.headers["Cookie"] == "SUB=s; SUBP=p; XSRF-TOKEN=x"
        assert prepared.headers["X-XSRF-TOKEN"] == "x"
        assert prepared.headers["User-Agent"] == MOBILE_UA

    def test_should_build_status_request(self):
        prepared = WeiboAdapter().build_request(
            FetchRequest(provider="weibo", query="status:4950000000000020"), Credential("weibo", {"SUB": "s"}))
        assert prepared.url == "https://m.weibo.cn/statuses/show?id=4950000000000020"
        assert "X-XSRF-TOKEN" not in prepared.headers

    def test_should_be_deterministic(self):
        """相同输入应生成完全相同的请求。"""
        cred = Credential("weibo", {"SUB": "s"})
        req = FetchRequest(provider="weibo", query="container:100103type=1")
        assert WeiboAdapter().build_request(req, cred) == WeiboAdapter().build_request(req, cred)

    def test_should_require_sub(self):
        """缺少 SUB 时应报 CREDENTIAL_MISSING。"""
        with pytest.raises(CredentialError) as ei:
            WeiboAdapter().build_request(FetchRequest(provider="weibo", query="user:1"),
                                         Credential("weibo", {"SUBP": "p"}))
        assert ei.value.kind == ErrorKind.CREDENTIAL_MISSING


@pytest.mark.unit
class Describe_WeiboParseResponse:
    def test_should_flatten_cards(self, make_raw, weibo_container_fixture):
        """应从普通卡片和卡片组中取出微博，并返回 since_id 游标。"""
        parsed = WeiboAdapter().parse_response(make_raw("weibo", weibo_container_fixture))
        assert [m["id"] for m in parsed.items] == ["4950000000000010", "4950000000000011", "4950000000000012"]
        assert parsed.cursor == "4950000000000001"
        assert parsed.has_more

    def test_should_parse_status_detail(self, make_raw, weibo_status_fixture):
        url = "https://m.weibo.cn/statuses/show?id=4950000000000020"
        parsed = WeiboAdapter().parse_response(make_raw("weibo", weibo_status_fixture, url=url))
        assert parsed.kind == "detail"
        assert parsed.items[0]["id"] == "4950000000000020"

    def test_should_raise_provider_error(self, make_raw):
        """ok 不为 1 时应报 PROVIDER_ERROR。"""
        with pytest.raises(ParseError) as ei:
            WeiboAdapter().parse_response(make_raw("weibo", {"ok": 0, "msg": "这里还没有内容"}))
        assert ei.value.kind == ErrorKind.PROVIDER_ERROR
        assert ei.value.provider_message == "这里还没有内容"

    @pytest.mark.parametrize("body,field", [
        ({"data": {}}, "ok"),
        ({"ok": 1}, "data"),
        ({"ok": 1, "data": {"cardlistInfo": {}}}, "data.cards"),
    ])
    def test_should_raise_missing_field(self, make_raw, body, field):
        with pytest.raises(ParseError) as ei:
            WeiboAdapter().parse_response(make_raw("weibo", body))
        assert ei.value.kind == ErrorKind.MISSING_FIELD
        assert ei.value.field == field

    def test_should_raise_for_login_page(self, make_raw):
        """返回登录页 HTML 时应报 UNEXPECTED_SHAPE。"""
        with pytest.raises(ParseError) as ei:
            WeiboAdapter().parse_response(make_raw("weibo", "<!DOCTYPE html><title>登录</title>".encode("utf-8")))
        assert ei.value.kind == ErrorKind.UNEXPECTED_SHAPE


@pytest.mark.unit
class Describe_WeiboNormalize:
    def test_should_map_container_page(self, weibo_container_fixture):
        """图片微博、视频微博正常映射，纯文字微博被跳过。"""
        cards = weibo_container_fixture["data"]["cards"]
        mblogs = [cards[0]["mblog"], cards[1]["card_group"][0]["mblog"], cards[2]["mblog"]]
        warnings = []
        pics, video = normalize(ProviderParsed(provider="weibo", items=mblogs), warnings)

        assert pics.text == "新年快乐 #新年#\n第二行"
        assert pics.tags == ["新年"]
        assert pics.pinned
        assert pics.stats.comments == 10000
        assert pics.created_at == "2025-01-01T12:00:00+08:00"
        assert pics.url == "https://m.weibo.cn/detail/4950000000000010"
        assert [(m.group, m.quality) for m in pics.media] == [
            ("pic:pic001", "large"), ("pic:pic001", "thumbnail"),
            ("pic:pic002", "large"), ("pic:pic002", "thumbnail"),
        ]
        assert pics.media[0].height == 1440

        assert [m.quality for m in video.media] == ["720p", "hd", "ld"]
        assert all(m.kind == "video" for m in video.media)
        assert len(warnings) == 1 and "4950000000000012" in warnings[0]

    def test_should_fall_back_to_retweet_media(self, weibo_status_fixture):
        """转发微博自身无媒体时应使用原微博的媒体。"""
        items = normalize(ProviderParsed(provider="weibo", kind="detail", items=[weibo_status_fixture["data"]]))
        assert len(items) == 1
        assert items[0].id == "4950000000000020"
        assert items[0].media[0].url == "https://wx2.sinaimg.cn/large/pic100.jpg"

    def test_should_keep_item_with_non_string_time(self, weibo_container_fixture):
        """created_at 不是字符串时只清空时间，不丢弃整条微博。"""
        mblog = dict(weibo_container_fixture["data"]["cards"][0]["mblog"], created_at=1735704000)
        warnings = []
        items = normalize(ProviderParsed(provider="weibo", items=[mblog]), warnings)
        assert len(items) == 1
        assert items[0].created_at == ""
        assert warnings == []
