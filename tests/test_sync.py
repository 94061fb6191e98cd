"""Tests for the long-poll sync loop and its error handling."""

import requests

from bot_core import Bot, BotHooks, BotState, Message
from bot_core.errors import Ret, RetError
from bot_core.models import SyncCheckResponse

from conftest import FakeCaller, new_messages, sync_key, wait_for


def make_bot(caller, **hooks):
    hooks.setdefault("uuid_callback", lambda u: None)
    return Bot(caller, config={"loginPollIntervalSec": 0}, hooks=BotHooks(**hooks))


class TestPolling:
    def test_normal_selector_repolls_without_fetch(self):
        caller = FakeCaller()
        caller.polls = [SyncCheckResponse("0", "0")] * 3
        handled = []
        b = make_bot(caller, message_handler=handled.append)
        b.login()
        try:
            assert wait_for(lambda: caller.count("sync_check") >= 5)
            assert caller.count("web_sync") == 0
            assert handled == []
        finally:
            b.exit()

    def test_new_message_fetches_then_dispatches_in_order(self):
        caller = FakeCaller()
        caller.polls = [SyncCheckResponse("0", "2")]
        caller.syncs = [new_messages(sync_key(11), {"MsgId": "m1"}, {"MsgId": "m2"}, {"MsgId": "m3"})]
        seen = []

        def handler(msg):
            # cursor already advanced when the first message arrives
            seen.append((msg.msg_id, msg.bot.storage.response.sync_key, msg.bot))

        b = make_bot(caller, message_handler=handler)
        b.login()
        try:
            assert wait_for(lambda: len(seen) == 3)
            assert [s[0] for s in seen] == ["m1", "m2", "m3"]
            assert all(s[1] == sync_key(11) for s in seen)
            assert all(s[2] is b for s in seen)
            assert ("web_sync", (sync_key(10),)) in caller.calls
        finally:
            b.exit()

    def test_cursor_follows_each_fetch(self):
        caller = FakeCaller()
        caller.polls = [SyncCheckResponse("0", "2"), SyncCheckResponse("0", "0"),
                        SyncCheckResponse("0", "2"), SyncCheckResponse("0", "6")]
        caller.syncs = [new_messages(sync_key(11), {"MsgId": "a"}),
                        new_messages(sync_key(12)),
                        new_messages(sync_key(13), {"MsgId": "b"})]
        b = make_bot(caller, message_handler=lambda m: None)
        b.login()
        try:
            assert wait_for(lambda: caller.count("web_sync") == 3)
            assert wait_for(lambda: b.storage.response.sync_key == sync_key(13))
            fetched_with = [args[0] for name, args in caller.calls if name == "web_sync"]
            assert fetched_with == [sync_key(10), sync_key(11), sync_key(12)]
        finally:
            b.exit()

    def test_no_handler_still_advances_cursor(self):
        caller = FakeCaller()
        caller.polls = [SyncCheckResponse("0", "2")]
        caller.syncs = [new_messages(sync_key(50), {"MsgId": "dropped"})]
        b = make_bot(caller)
        b.login()
        try:
            assert wait_for(lambda: b.storage.response.sync_key == sync_key(50))
        finally:
            b.exit()

    def test_heartbeat_sees_every_signal(self):
        caller = FakeCaller()
        caller.polls = [SyncCheckResponse("0", "0"), SyncCheckResponse("1102", "0")]
        beats = []
        b = make_bot(caller, sync_check_callback=beats.append)
        b.login()
        assert b.block(timeout=2) is True
        assert beats[:2] == [SyncCheckResponse("0", "0"), SyncCheckResponse("1102", "0")]

    def test_messages_are_message_objects(self):
        caller = FakeCaller()
        caller.polls = [SyncCheckResponse("0", "2")]
        caller.syncs = [new_messages(sync_key(11), {"MsgId": "m1", "Content": "hi",
                                                    "FromUserName": "@me"})]
        got = []
        b = make_bot(caller, message_handler=got.append)
        b.login()
        try:
            assert wait_for(lambda: got)
            msg = got[0]
            assert isinstance(msg, Message)
            assert msg.content == "hi"
            assert msg.is_send_by_self()
        finally:
            b.exit()


class TestErrorHandling:
    def test_remote_logout_ends_session(self):
        caller = FakeCaller()
        caller.polls = [SyncCheckResponse(str(int(Ret.FAILED_LOGIN_WARN)), "0")]
        logged_out = []
        b = make_bot(caller, logout_callback=logged_out.append)
        b.login()

        assert b.block(timeout=2) is True
        assert b.state is BotState.EXITED
        reason = b.crash_reason()
        assert isinstance(reason, RetError)
        assert reason.ret is Ret.FAILED_LOGIN_WARN
        assert logged_out == [b]
        # local teardown only
        assert caller.count("logout") == 0

    def test_transport_errors_are_retried(self):
        caller = FakeCaller()
        caller.polls = [requests.ConnectionError("reset"), requests.Timeout("slow"),
                        SyncCheckResponse("0", "0")]
        b = make_bot(caller)
        b.login()
        try:
            assert wait_for(lambda: caller.count("sync_check") >= 5)
            assert b.alive()
            assert b.crash_reason() is None
        finally:
            b.exit()

    def test_fetch_failure_goes_to_classifier(self):
        caller = FakeCaller()
        caller.polls = [SyncCheckResponse("0", "2")]
        failure = requests.ConnectionError("sync failed")
        caller.syncs = [failure]
        seen = []
        b = make_bot(caller, message_error_handler=lambda e: seen.append(e) or False)
        b.login()

        assert b.block(timeout=2) is True
        assert seen == [failure]
        assert b.crash_reason() is failure

    def test_custom_classifier_can_retry_fatal_codes(self):
        caller = FakeCaller()
        caller.polls = [SyncCheckResponse("1102", "0"), SyncCheckResponse("1102", "0")]
        seen = []
        b = make_bot(caller, message_error_handler=lambda e: seen.append(e) or True)
        b.login()
        try:
            assert wait_for(lambda: len(seen) == 2)
            assert wait_for(lambda: caller.count("sync_check") >= 4)
            assert b.alive()
        finally:
            b.exit()

    def test_handler_exception_does_not_kill_loop(self):
        caller = FakeCaller()
        caller.polls = [SyncCheckResponse("0", "2"), SyncCheckResponse("0", "2")]
        caller.syncs = [new_messages(sync_key(11), {"MsgId": "bad"}),
                        new_messages(sync_key(12), {"MsgId": "good"})]
        got = []

        def handler(msg):
            if msg.msg_id == "bad":
                raise ValueError("handler bug")
            got.append(msg.msg_id)

        b = make_bot(caller, message_handler=handler)
        b.login()
        try:
            assert wait_for(lambda: got == ["good"])
            assert b.storage.response.sync_key == sync_key(12)
        finally:
            b.exit()

    def test_backoff_setting_waits_between_retries(self):
        caller = FakeCaller()
        caller.polls = [requests.ConnectionError("reset")]
        b = Bot(caller, config={"loginPollIntervalSec": 0, "syncBackoff": True,
                                "syncBackoffInitialSec": 30},
                hooks=BotHooks(uuid_callback=lambda u: None))
        b.login()
        assert wait_for(lambda: caller.count("sync_check") == 1)
        # parked in the 30s backoff; exit cuts it short
        assert caller.count("sync_check") == 1
        b.exit()
        b._sync_loop.thread.join(timeout=2)
        assert not b._sync_loop.thread.is_alive()


class TestSingleLoop:
    def test_repeated_online_never_spawns_second_loop(self):
        caller = FakeCaller()
        b = make_bot(caller)
        b.login()
        try:
            loop = b._sync_loop
            for _ in range(3):
                b.web_init()
            assert b._sync_loop is loop
            assert wait_for(lambda: caller.count("sync_check") > 10)
            assert len(caller.sync_check_threads) == 1
        finally:
            b.exit()
