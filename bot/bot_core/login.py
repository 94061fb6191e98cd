"""
Login strategies. Each one ends in ``bot.handle_login(body)`` once it holds a
confirmation payload (or, for a resumed session, in ``bot.web_init()``).

  ScanLogin  → new uuid, QR via uuid_callback, wait for scan + confirm
  HotLogin   → reload a snapshot, check it still works, else optionally scan
  PushLogin  → reload a snapshot, ask the phone to confirm without a scan
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

from .config import log
from .constants import (
    LOGIN_SUCCESS, LOGIN_SCANNED, LOGIN_EXPIRED, LOGIN_REJECTED, LOGIN_WAIT,
)
from .errors import BotError, LoginAbortedError, UsageError


class BotLogin:
    """Strategy interface."""

    def login(self, bot):
        raise NotImplementedError


# ─── Scan login ──────────────────────────────────────────────────

class ScanLogin(BotLogin):
    """Fresh login. ``uuid`` can be supplied when it was fetched elsewhere (push)."""

    def __init__(self, uuid=None, show_qrcode=True):
        self.uuid = uuid
        self.show_qrcode = show_qrcode

    def login(self, bot):
        bot.hooks.validate(require_uuid_callback=self.show_qrcode)
        uuid = self.uuid or bot.caller.get_login_uuid()
        bot.set_uuid(uuid)
        if self.show_qrcode:
            log.info("Login uuid issued: %s", uuid)
            bot.hooks.uuid_callback(uuid)
        body = wait_for_confirm(bot, uuid)
        return bot.handle_login(body)


def wait_for_confirm(bot, uuid):
    """
    Poll the confirmation endpoint until the phone confirms.
    Returns the confirmation payload; raises LoginAbortedError on
    expiry, rejection, timeout or exit.
    """
    interval = bot.settings["loginPollIntervalSec"]
    timeout = bot.settings["loginTimeoutSec"]
    deadline = time.monotonic() + timeout if timeout else None
    scanned = False

    while True:
        resp = bot.caller.check_login(uuid)
        code = str(resp.code)

        if code == LOGIN_SUCCESS:
            log.info("Login confirmed")
            if bot.hooks.login_callback is not None:
                bot.hooks.login_callback(resp.body)
            return resp.body
        if code == LOGIN_SCANNED:
            if not scanned:
                scanned = True
                log.info("QR code scanned, waiting for confirmation on the phone")
                if bot.hooks.scan_callback is not None:
                    bot.hooks.scan_callback(resp.body)
        elif code == LOGIN_EXPIRED:
            raise LoginAbortedError(f"login uuid {uuid} expired")
        elif code == LOGIN_REJECTED:
            raise LoginAbortedError("login rejected on the phone")
        elif code != LOGIN_WAIT:
            raise LoginAbortedError(f"unexpected login status {code}")

        if deadline is not None and time.monotonic() >= deadline:
            raise LoginAbortedError(f"no confirmation within {timeout}s")
        if bot.wait_exit(interval or 0):
            raise LoginAbortedError("login cancelled by exit")


# ─── Hot login ───────────────────────────────────────────────────

@dataclass
class HotLoginOptions:
    # Resumption failed → fall back to a scan login.
    retry: bool = False
    # Resume straight into polling with the stored user/cursor; no init call.
    skip_init: bool = False
    # validator(bot, snapshot) before going online; raise to reject the resume.
    validator: Optional[Callable[[Any, Any], Any]] = None
    # Re-dump the snapshot every N seconds while online.
    sync_reload_interval: Optional[float] = None


class HotLogin(BotLogin):

    def __init__(self, storage, options=None):
        self.storage = storage
        self.options = options or HotLoginOptions()

    def login(self, bot):
        bot.set_hot_reload_storage(self.storage)
        try:
            self.resume(bot)
        except (requests.RequestException, BotError) as e:
            if not self.options.retry or isinstance(e, UsageError):
                raise
            log.warning("Hot login failed (%s), falling back to QR login", e)
            ScanLogin().login(bot)
        if self.options.sync_reload_interval:
            bot.start_sync_reload(self.options.sync_reload_interval)

    def resume(self, bot):
        item = bot.read_snapshot()
        log.info("Resuming session for uin %s", item.base_request.uin)
        if self.options.validator is not None:
            self.options.validator(bot, item)
        bot.apply_snapshot(item)
        if self.options.skip_init:
            bot.resume_online(item)
        else:
            bot.web_init()


# ─── Push login ──────────────────────────────────────────────────

@dataclass
class PushLoginOptions:
    # Push refused / snapshot unusable → fall back to a scan login.
    retry: bool = False


class PushLogin(BotLogin):
    """
    No-scan login. Needs a snapshot from an earlier scan login whose account
    the service still recognises; the phone gets a confirm prompt instead.
    """

    def __init__(self, storage, options=None):
        self.storage = storage
        self.options = options or PushLoginOptions()

    def login(self, bot):
        bot.set_hot_reload_storage(self.storage)
        try:
            item = bot.reload()
            uuid = bot.caller.push_login(item.base_request.uin)
            log.info("Push login sent to the phone (uuid=%s)", uuid)
            return ScanLogin(uuid=uuid, show_qrcode=False).login(bot)
        except (requests.RequestException, BotError) as e:
            if not self.options.retry or isinstance(e, UsageError):
                raise
            log.warning("Push login failed (%s), falling back to QR login", e)
            return ScanLogin().login(bot)
