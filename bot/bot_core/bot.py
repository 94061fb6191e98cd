"""
Bot — owns one chat session from login to exit.

Lifecycle: UNAUTHENTICATED → AUTHENTICATING → ONLINE → EXITED.
Entering ONLINE starts the sync thread, at most once per lifecycle; a login
against an EXITED bot starts a new lifecycle instead of reviving the old one.

Threading: login, logout and dump run on the caller's thread; the sync loop
runs on its own. ``_lock`` (re-entrant) guards state transitions, the
start-once flag, session state writes and snapshot encoding. Network calls
never run under it.
"""

import random
import threading
from enum import Enum

from .classifier import BackoffErrorClassifier, DefaultErrorClassifier
from .config import log, safe_print, with_defaults
from .constants import BOT_VERSION, QRCODE_URL
from .errors import NotLoggedInError, ParseError, UsageError, BotError
from .hooks import BotHooks
from .login import HotLogin, HotLoginOptions, PushLogin, PushLoginOptions, ScanLogin
from .models import BaseRequest, InitResponse, LoginInfo, Storage
from .storage import HotReloadStorageItem, as_storage, write_item
from .sync import SyncLoop


class BotState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    ONLINE = "online"
    EXITED = "exited"


class _Lifecycle:
    """Per-session flags. Replaced wholesale when a new session starts."""

    def __init__(self):
        self.cancelled = threading.Event()
        self.exiting = False
        self.sync_started = False
        self.reload_started = False
        self.error = None


def get_random_device_id():
    return "e" + "".join(random.choice("0123456789") for _ in range(15))


class Bot:

    def __init__(self, caller, config=None, hooks=None):
        self.caller = caller
        self.settings = with_defaults(config)
        self.hooks = hooks if hooks is not None else BotHooks()
        self.storage = Storage()

        self._lock = threading.RLock()
        self._lifecycle = _Lifecycle()
        self._state = BotState.UNAUTHENTICATED
        self._self = None
        self._uuid = ""
        self._device_id = self.settings["deviceId"] or ""
        self._hot_reload_storage = as_storage(self.settings["storageFile"])
        self._sync_loop = None

    # ─── Introspection ───────────────────────────────────────

    @property
    def state(self):
        return self._state

    @property
    def uuid(self):
        return self._uuid

    @property
    def device_id(self):
        return self._device_id

    def alive(self):
        """True while a user is logged in and the session was not cancelled."""
        with self._lock:
            return self._self is not None and not self._lifecycle.cancelled.is_set()

    def is_hot(self):
        return self._hot_reload_storage is not None

    def get_current_user(self):
        with self._lock:
            if self._self is None:
                raise NotLoggedInError("user not login")
            return self._self

    def crash_reason(self):
        """Error that ended the last session via the sync loop; None for a clean exit."""
        return self._lifecycle.error

    def set_device_id(self, device_id):
        self._device_id = device_id

    def set_uuid(self, uuid):
        self._uuid = uuid

    def set_hot_reload_storage(self, storage):
        self._hot_reload_storage = as_storage(storage)

    # ─── Login entry points ──────────────────────────────────

    def login(self):
        """QR code login."""
        return self.login_with(ScanLogin())

    def hot_login(self, storage, options=None, **kwargs):
        """Resume from a snapshot; kwargs are HotLoginOptions fields."""
        options = options or HotLoginOptions(**kwargs)
        return self.login_with(HotLogin(storage, options))

    def push_login(self, storage, options=None, **kwargs):
        """Confirm on the phone without scanning; kwargs are PushLoginOptions fields."""
        options = options or PushLoginOptions(**kwargs)
        return self.login_with(PushLogin(storage, options))

    def login_with(self, strategy):
        self.hooks.validate()
        with self._lock:
            if self._state is BotState.AUTHENTICATING:
                raise UsageError("a login is already in progress")
            if self._lifecycle.cancelled.is_set():
                self._lifecycle = _Lifecycle()
            was_online = self._state is BotState.ONLINE
            checkpoint = self._checkpoint() if was_online else None
            self._state = BotState.AUTHENTICATING

        try:
            strategy.login(self)
        except BaseException:
            with self._lock:
                if self._state is BotState.AUTHENTICATING:
                    if was_online and self.alive():
                        self._restore(checkpoint)
                        self._state = BotState.ONLINE
                    else:
                        self._self = None
                        self._state = BotState.UNAUTHENTICATED
            raise

    def _checkpoint(self):
        """Everything a login attempt may overwrite before it succeeds."""
        s = self.storage
        return dict(
            request=s.request,
            login_info=s.login_info,
            response=s.response,
            jar=self.caller.dump_cookies(),
            domain=self.caller.domain,
            uuid=self._uuid,
            device_id=self._device_id,
            hot_reload_storage=self._hot_reload_storage,
        )

    def _restore(self, cp):
        # The sync thread keeps the same response object, so cursor moves made
        # during the failed attempt survive.
        self.storage.request = cp["request"]
        self.storage.login_info = cp["login_info"]
        self.storage.response = cp["response"]
        self.caller.load_cookies(cp["jar"])
        self.caller.domain = cp["domain"]
        self._uuid = cp["uuid"]
        self._device_id = cp["device_id"]
        self._hot_reload_storage = cp["hot_reload_storage"]
        log.warning("Login attempt failed; kept the running session (uin=%s)",
                    cp["request"].uin if cp["request"] else "-")

    # ─── Login completion ────────────────────────────────────

    def handle_login(self, body):
        """Turn a confirmation payload into credentials, persist, then init."""
        raw = self.caller.get_login_info(body)
        info = raw if isinstance(raw, LoginInfo) else LoginInfo.from_dict(raw)

        with self._lock:
            if not self._device_id:
                self._device_id = get_random_device_id()
            request = BaseRequest(
                uin=info.wxuin,
                sid=info.wxsid,
                skey=info.skey,
                device_id=self._device_id,
            )
            self.storage.login_info = info
            self.storage.request = request

        log.info("Logged in as uin %s (device %s)", info.wxuin, self._device_id)

        if self._hot_reload_storage is not None:
            self.dump_hot_reload_storage()

        return self.web_init()

    def web_init(self):
        """Fetch the user and starting cursor, notify the phone, go online."""
        with self._lock:
            request = self.storage.request
            info = self.storage.login_info
        if request is None or info is None:
            raise NotLoggedInError("web_init needs credentials")

        resp = self.caller.web_init(request)
        with self._lock:
            self.storage.response = resp

        self.caller.status_notify(request, resp, info)
        self._go_online(resp.user)

    def resume_online(self, item):
        """Go online from a snapshot alone, reusing its user and cursor."""
        if item.sync_key is None:
            raise ParseError("snapshot has no sync key; cannot resume without init")
        user = item.user or {"Uin": item.base_request.uin}
        with self._lock:
            self.storage.response = InitResponse(user=user, sync_key=item.sync_key)
        self._go_online(user)

    def _go_online(self, user):
        with self._lock:
            lc = self._lifecycle
            if lc.cancelled.is_set():
                raise UsageError("session exited during login")
            self._self = user
            self._state = BotState.ONLINE
            # A resumed login on a live session must not start a second loop.
            if lc.sync_started:
                log.info("Session refreshed; sync loop already running")
                return
            lc.sync_started = True
            self._sync_loop = SyncLoop(self, lc)
            self._sync_loop.start()
            uin = self.storage.request.uin if self.storage.request else "-"
        log.info("Bot online (v%s, uin=%s)", BOT_VERSION, uin)

    # ─── Session state access (sync thread) ──────────────────

    def session_snapshot(self):
        with self._lock:
            s = self.storage
            if s.request is None or s.login_info is None or s.response is None:
                raise NotLoggedInError("no session state")
            return s.request, s.login_info, s.response

    def advance_cursor(self, sync_key):
        with self._lock:
            if self.storage.response is not None:
                self.storage.response.sync_key = sync_key

    def error_classifier(self):
        if self.hooks.message_error_handler is not None:
            return self.hooks.message_error_handler
        if self.settings["syncBackoff"]:
            return BackoffErrorClassifier(
                self,
                initial_delay=self.settings["syncBackoffInitialSec"],
                max_delay=self.settings["syncBackoffMaxSec"],
            )
        return DefaultErrorClassifier(self)

    # ─── Ending the session ──────────────────────────────────

    def logout(self):
        """Remote logout, then exit. Exit happens even if the remote call fails."""
        with self._lock:
            if self._state is not BotState.ONLINE or not self.alive():
                raise NotLoggedInError("user not login")
            info = self.storage.login_info
        try:
            self.caller.logout(info)
        finally:
            self.exit()

    def exit(self):
        """End the session locally. Fires logout_callback once; unblocks ``block``."""
        self._exit(self._lifecycle)

    def teardown(self, err, lifecycle=None):
        """Local-only exit after a fatal sync error; records the crash reason first."""
        with self._lock:
            lc = lifecycle or self._lifecycle
            if lc.error is None:
                lc.error = err
        self._exit(lc)

    def _exit(self, lc):
        with self._lock:
            # Nothing to end before the first login attempt.
            if self._state is BotState.UNAUTHENTICATED:
                return
            if lc is not self._lifecycle or lc.exiting:
                return
            lc.exiting = True

        try:
            if self.hooks.logout_callback is not None:
                self.hooks.logout_callback(self)
        finally:
            with self._lock:
                self._self = None
                self.storage = Storage()
                self._state = BotState.EXITED
                lc.cancelled.set()
            log.info("Bot exited%s", f" ({lc.error})" if lc.error else "")

    def block(self, timeout=None):
        """
        Wait until the session exits. Returns True once it has, False if
        ``timeout`` elapsed first.
        """
        with self._lock:
            if self._state is BotState.UNAUTHENTICATED:
                raise NotLoggedInError("`block` must be called after user login")
            lc = self._lifecycle
        return lc.cancelled.wait(timeout)

    def wait_exit(self, timeout):
        return self._lifecycle.cancelled.wait(timeout)

    # ─── Hot reload ──────────────────────────────────────────

    def dump_hot_reload_storage(self):
        if self._hot_reload_storage is None:
            raise UsageError("hot reload storage is not set")
        self.dump_to(self._hot_reload_storage)

    def dump_to(self, writer):
        """Write the snapshot JSON to ``writer`` (any object with ``write``)."""
        with self._lock:
            s = self.storage
            if s.request is None or s.login_info is None:
                raise NotLoggedInError("nothing to dump before login")
            item = HotReloadStorageItem(
                base_request=s.request,
                login_info=s.login_info,
                domain=self.caller.domain,
                uuid=self._uuid,
                jar=self.caller.dump_cookies(),
                sync_key=s.response.sync_key if s.response is not None else None,
                user=self._self,
            )
            write_item(writer, item)

    def read_snapshot(self):
        """Decode the stored snapshot without touching session state."""
        if self._hot_reload_storage is None:
            raise UsageError("hot reload storage is not set")
        return HotReloadStorageItem.from_json(self._hot_reload_storage.read())

    def reload(self):
        """Load the snapshot into session state. Returns the decoded item."""
        return self.apply_snapshot(self.read_snapshot())

    def apply_snapshot(self, item):
        with self._lock:
            self.caller.load_cookies(item.jar)
            self.caller.domain = item.domain
            self.storage.login_info = item.login_info
            self.storage.request = item.base_request
            self._uuid = item.uuid
            self._device_id = item.base_request.device_id
        return item

    def start_sync_reload(self, interval):
        """Background re-dump of the snapshot every ``interval`` seconds."""
        with self._lock:
            lc = self._lifecycle
            if lc.reload_started or lc.cancelled.is_set():
                return
            lc.reload_started = True

        def run():
            while not lc.cancelled.wait(interval):
                try:
                    self.dump_hot_reload_storage()
                except BotError as e:
                    log.warning("Periodic snapshot failed: %s", e)

        threading.Thread(target=run, name="bot-reload", daemon=True).start()


# ─── Factory & QR helpers ────────────────────────────────────────

def default_bot(caller, config=None, **hooks):
    """Bot with logging hooks installed; any hook can be overridden by keyword."""
    defaults = dict(
        uuid_callback=print_qrcode_url,
        scan_callback=lambda body: log.info("Scanned, please confirm the login on the phone"),
        login_callback=lambda body: log.info("Login confirmed"),
        sync_check_callback=lambda resp: log.info(
            "RetCode:%s  Selector:%s", resp.retcode, resp.selector),
    )
    defaults.update(hooks)
    return Bot(caller, config=config, hooks=BotHooks(**defaults))


def get_qrcode_url(uuid):
    return QRCODE_URL + uuid


def print_qrcode_url(uuid):
    safe_print("Open the link below and scan the QR code to log in:")
    safe_print(get_qrcode_url(uuid))
