"""Tests for hot-reload snapshots and storage targets."""

import io

import pytest
import requests

from bot_core.errors import ParseError
from bot_core.models import BaseRequest, LoginInfo
from bot_core.storage import (
    FileHotReloadStorage, HotReloadStorageItem, MemoryHotReloadStorage, as_storage, write_item,
)

from conftest import LOGIN_INFO, FakeCaller, sync_key


def make_item(**overrides):
    values = dict(
        base_request=BaseRequest(uin="1001", sid="sid-1", skey="@crypt_skey", device_id="e123456789012345"),
        login_info=LoginInfo.from_dict(LOGIN_INFO),
        domain="wx2.qq.com",
        uuid="abc123",
        jar=[{"name": "wxuin", "value": "1001", "domain": ".qq.com", "path": "/",
              "secure": False, "expires": None}],
        sync_key=sync_key(10, 20),
        user={"UserName": "@me"},
    )
    values.update(overrides)
    return HotReloadStorageItem(**values)


class TestSnapshotCodec:
    def test_round_trip(self):
        item = make_item()
        decoded = HotReloadStorageItem.from_json(item.to_json())
        assert decoded == item

    def test_stable_field_names(self):
        data = make_item().to_dict()
        assert set(data) == {"baseRequest", "jar", "loginInfo", "domain", "uuid", "syncKey", "user"}
        assert data["baseRequest"]["DeviceID"] == "e123456789012345"

    def test_optional_fields_may_be_absent(self):
        data = make_item().to_dict()
        del data["syncKey"], data["user"], data["jar"]
        item = HotReloadStorageItem.from_dict(data)
        assert item.sync_key is None
        assert item.user is None
        assert item.jar == []

    @pytest.mark.parametrize("text", ["", "   ", "not json", "[]", '{"domain": "x"}'])
    def test_bad_input_is_parse_error(self, text):
        with pytest.raises(ParseError):
            HotReloadStorageItem.from_json(text)


class TestStorageTargets:
    def test_file_storage(self, tmp_path):
        storage = FileHotReloadStorage(tmp_path / "nested" / "storage.json")
        assert storage.read() == ""
        storage.write("{}")
        storage.write('{"a": 1}')
        assert storage.read() == '{"a": 1}'
        assert not (tmp_path / "nested" / "storage.json.tmp").exists()

    def test_memory_storage(self):
        storage = MemoryHotReloadStorage()
        storage.write("x")
        assert storage.read() == "x"

    def test_as_storage(self, tmp_path):
        assert as_storage(None) is None
        mem = MemoryHotReloadStorage()
        assert as_storage(mem) is mem
        assert isinstance(as_storage(str(tmp_path / "s.json")), FileHotReloadStorage)
        with pytest.raises(TypeError):
            as_storage(42)

    def test_write_item_to_text_and_binary(self):
        item = make_item()
        text, binary = io.StringIO(), io.BytesIO()
        write_item(text, item)
        write_item(binary, item)
        assert text.getvalue() == binary.getvalue().decode("utf-8") == item.to_json()


class TestCookieSnapshot:
    def test_cookies_survive_dump_and_load(self):
        source = FakeCaller()
        source.session.cookies.set("wxuin", "1001", domain=".qq.com", path="/")
        source.session.cookies.set("webwx_data_ticket", "t", domain=".qq.com", path="/")

        target = FakeCaller()
        target.session.cookies.set("stale", "1")
        target.load_cookies(source.dump_cookies())

        assert target.session.cookies.get("wxuin", domain=".qq.com") == "1001"
        assert target.session.cookies.get("webwx_data_ticket") == "t"
        assert target.session.cookies.get("stale") is None
        assert isinstance(target.session, requests.Session)
