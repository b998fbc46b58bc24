import json

import pytest

import snapfetch
from snapfetch import CookieStore, Credential, CredentialError, ErrorKind
from snapfetch.models import cookie_header, parse_cookie_text


@pytest.mark.unit
class Describe_CookieStore:
    def test_should_raise_missing_for_unknown_provider(self):
        """未配置的平台应报 CREDENTIAL_MISSING。"""
        with pytest.raises(CredentialError) as ei:
            CookieStore().get("douyin")
        assert ei.value.kind == ErrorKind.CREDENTIAL_MISSING
        assert ei.value.provider == "douyin"

    def test_should_store_a_copy(self):
        """保存后修改原字典不应影响已存储的凭证。"""
        cookies = {"sessionid": "abc"}
        store = CookieStore()
        store.set("douyin", Credential("douyin", cookies))
        cookies["sessionid"] = "changed"
        assert store.get("douyin").cookies == {"sessionid": "abc"}

    def test_should_replace_previous_credential(self):
        """再次 set 应替换旧凭证。"""
        store = CookieStore()
        store.set_cookie_text("weibo", "SUB=old")
        store.set_cookie_text("weibo", "SUB=new; SUBP=p")
        assert store.get("weibo").cookies == {"SUB": "new", "SUBP": "p"}
        assert store.providers() == ["weibo"]

    def test_should_detect_expiry(self):
        """过期判断应基于 expires_at，未设置则永不过期。"""
        assert not CookieStore.is_expired(Credential("weibo", {"SUB": "x"}), now=1e12)
        cred = Credential("weibo", {"SUB": "x"}, expires_at=100.0)
        assert not CookieStore.is_expired(cred, now=99.0)
        assert CookieStore.is_expired(cred, now=100.0)

    def test_should_raise_expired_on_resolve(self):
        """resolve 遇到过期凭证应报 CREDENTIAL_EXPIRED。"""
        store = CookieStore()
        store.set_cookie_text("douyin", "sessionid=abc", ttl=60, now=1000.0)
        assert store.resolve("douyin", now=1059.0).cookies["sessionid"] == "abc"
        with pytest.raises(CredentialError) as ei:
            store.resolve("douyin", now=1060.0)
        assert ei.value.kind == ErrorKind.CREDENTIAL_EXPIRED

    def test_should_prefer_override(self):
        """显式传入的凭证优先，且不查存储。"""
        override = Credential("douyin", {"sessionid": "direct"})
        assert CookieStore().resolve("douyin", override=override) is override

    def test_should_report_authentication(self):
        """is_authenticated 应检查必需 cookie 与过期时间。"""
        store = CookieStore({"weibo": Credential("weibo", {"SUBP": "p"})})
        assert store.is_authenticated("weibo")
        assert not store.is_authenticated("weibo", required=("SUB",))
        assert not store.is_authenticated("douyin")

    def test_should_remove_provider(self):
        store = CookieStore({"weibo": Credential("weibo", {"SUB": "x"})})
        store.remove("weibo")
        store.remove("weibo")
        assert store.providers() == []


@pytest.mark.unit
class Describe_CookieText:
    def test_should_keep_order_and_skip_junk(self):
        """解析 cookie 文本应保持顺序并忽略无效片段。"""
        cookies = parse_cookie_text(" sessionid=abc ; junk; ttwid=t=1;;msToken= m ")
        assert list(cookies) == ["sessionid", "ttwid", "msToken"]
        assert cookies["ttwid"] == "t=1"
        assert cookies["msToken"] == "m"

    def test_should_render_header(self):
        assert cookie_header({"a": "1", "b": "2"}) == "a=1; b=2"


@pytest.mark.unit
class Describe_CookieFile:
    def test_should_load_all_entry_formats(self, tmp_path):
        """cookie 文件应支持字符串、字典和带过期时间的条目。"""
        path = tmp_path / "cookies.json"
        path.write_text(json.dumps({
            "douyin": "sessionid=abc; ttwid=t",
            "weibo": {"SUB": "s"},
            "other": {"cookies": {"k": "v"}, "expires_hint": "2020-01-01T00:00:00"},
            "broken": 42,
        }), encoding="utf-8")
        store = CookieStore()
        loaded = snapfetch.load_cookie_file(store, path)
        assert loaded == ["douyin", "weibo", "other"]
        assert store.get("douyin").cookies == {"sessionid": "abc", "ttwid": "t"}
        assert store.get("weibo").cookies == {"SUB": "s"}
        assert store.get("other").expires_at is not None
        with pytest.raises(CredentialError):
            store.resolve("other")

    def test_should_handle_missing_file(self, tmp_path):
        """cookie 文件不存在时应安全返回空。"""
        assert snapfetch.load_cookie_file(CookieStore(), tmp_path / "none.json") == []

    def test_should_reject_non_object_file(self, tmp_path):
        path = tmp_path / "cookies.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ValueError):
            snapfetch.load_cookie_file(CookieStore(), path)

    def test_should_save_and_load_cookies(self, tmp_path):
        """保存后应可再次读取 cookies。"""
        path = tmp_path / "nested" / "cookies.json"
        store = CookieStore()
        store.set_cookie_text("weibo", "SUB=abc; SUBP=def")
        store.set("douyin", Credential("douyin", {"sessionid": "x"}, expires_at=4102444800.0))
        snapfetch.save_cookie_file(store, path)

        again = CookieStore()
        assert snapfetch.load_cookie_file(again, path) == ["douyin", "weibo"]
        assert again.get("weibo").cookies == {"SUB": "abc", "SUBP": "def"}
        assert again.get("douyin").expires_at == pytest.approx(4102444800.0, abs=1)
