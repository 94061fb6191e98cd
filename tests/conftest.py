"""Shared pytest fixtures: a scripted Caller and thread helpers."""

import threading
import time

import pytest
import requests

from bot_core import Bot, BotHooks, Caller, MemoryHotReloadStorage
from bot_core.models import (
    CheckLoginResponse, InitResponse, SyncCheckResponse, SyncKey, SyncResponse,
)

LOGIN_INFO = {
    "Ret": 0,
    "Message": "",
    "SKey": "@crypt_skey",
    "WxSid": "sid-1",
    "WxUin": "1001",
    "PassTicket": "ticket",
    "IsGrayScale": 1,
}

USER = {"Uin": 1001, "UserName": "@me", "NickName": "Me"}


def sync_key(*vals):
    return SyncKey(items=tuple((i + 1, v) for i, v in enumerate(vals)))


def wait_for(predicate, timeout=3.0, interval=0.01):
    """Spin until ``predicate()`` is truthy; return its last value."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        value = predicate()
        if value:
            return value
        time.sleep(interval)
    return predicate()


class FakeCaller(Caller):
    """
    Scripted transport. ``polls`` is consumed by sync_check: each item is a
    SyncCheckResponse or an exception to raise. Once empty, sync_check
    returns a "nothing new" signal after a short pause.
    """

    def __init__(self):
        super().__init__(session=requests.Session(), domain="wx.qq.com")
        self.uuid = "abc123"
        self.login_codes = [CheckLoginResponse("201", b"avatar"),
                            CheckLoginResponse("200", b"redirect")]
        self.login_info = dict(LOGIN_INFO)
        self.init_key = sync_key(10)
        self.polls = []
        self.syncs = []
        self.push_uuid = "push-uuid"
        self.push_error = None
        self.logout_error = None
        self.init_error = None

        self.calls = []
        self.sync_check_threads = set()
        self._lock = threading.Lock()

    def record(self, name, *args):
        with self._lock:
            self.calls.append((name, args))

    def count(self, name):
        with self._lock:
            return sum(1 for n, _ in self.calls if n == name)

    def get_login_uuid(self):
        self.record("get_login_uuid")
        return self.uuid

    def check_login(self, uuid):
        self.record("check_login", uuid)
        return self.login_codes.pop(0)

    def push_login(self, uin):
        self.record("push_login", uin)
        if self.push_error is not None:
            raise self.push_error
        return self.push_uuid

    def get_login_info(self, body):
        self.record("get_login_info", body)
        return self.login_info

    def web_init(self, request):
        self.record("web_init", request)
        if self.init_error is not None:
            raise self.init_error
        return InitResponse(user=dict(USER), sync_key=self.init_key)

    def status_notify(self, request, response, info):
        self.record("status_notify")

    def sync_check(self, request, info, response):
        self.record("sync_check", request, info, response.sync_key)
        with self._lock:
            self.sync_check_threads.add(threading.get_ident())
            item = self.polls.pop(0) if self.polls else None
        if item is None:
            time.sleep(0.005)
            return SyncCheckResponse("0", "0")
        if isinstance(item, BaseException):
            raise item
        return item

    def web_sync(self, request, response, info):
        self.record("web_sync", response.sync_key)
        with self._lock:
            item = self.syncs.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def logout(self, info):
        self.record("logout", info)
        if self.logout_error is not None:
            raise self.logout_error


def new_messages(key, *msgs):
    return SyncResponse(add_msg_list=[dict(m) for m in msgs], sync_key=key)


@pytest.fixture
def caller():
    return FakeCaller()


@pytest.fixture
def uuids():
    return []


@pytest.fixture
def bot(caller, uuids):
    hooks = BotHooks(uuid_callback=uuids.append)
    b = Bot(caller, config={"loginPollIntervalSec": 0}, hooks=hooks)
    yield b
    b.exit()


@pytest.fixture
def memory_storage():
    return MemoryHotReloadStorage()
