"""
Caller — the contract bot_core needs from a transport.

Endpoint encoding lives in concrete subclasses. The base class only owns the
pieces the session core touches directly: the HTTP session (cookie store) and
the service domain, both of which go into hot-reload snapshots.
"""

from abc import ABC, abstractmethod

from requests.cookies import create_cookie

from .constants import DEFAULT_DOMAIN
from .http_client import create_session


class Caller(ABC):
    """
    Remote API used by the bot. Every method may raise a transport error
    (``requests.RequestException``) or a ``RetError`` for a negative status.
    """

    def __init__(self, session=None, domain=DEFAULT_DOMAIN):
        self.session = session if session is not None else create_session()
        self.domain = domain

    # ── Login ────────────────────────────────────────────────

    @abstractmethod
    def get_login_uuid(self):
        """Ask the service for a fresh login uuid (the QR code payload)."""

    @abstractmethod
    def check_login(self, uuid):
        """Poll the confirmation state of ``uuid``. Returns CheckLoginResponse."""

    @abstractmethod
    def push_login(self, uin):
        """Ask the phone of ``uin`` to confirm without a scan. Returns a uuid."""

    @abstractmethod
    def get_login_info(self, body):
        """Exchange the confirmation payload for a LoginInfo dict."""

    # ── Session ──────────────────────────────────────────────

    @abstractmethod
    def web_init(self, request):
        """Full initialization. Returns InitResponse with the starting cursor."""

    @abstractmethod
    def status_notify(self, request, response, info):
        """Tell the phone this client is online."""

    @abstractmethod
    def sync_check(self, request, info, response):
        """Long-poll. Blocks server-side; returns SyncCheckResponse."""

    @abstractmethod
    def web_sync(self, request, response, info):
        """Fetch new events. Returns SyncResponse with the next cursor."""

    @abstractmethod
    def logout(self, info):
        """End the session on the remote side."""

    # ── Cookie store ─────────────────────────────────────────

    def dump_cookies(self):
        """Cookie jar as a list of plain dicts (JSON-friendly)."""
        return [
            {
                "name": c.name,
                "value": c.value,
                "domain": c.domain,
                "path": c.path,
                "secure": bool(c.secure),
                "expires": c.expires,
            }
            for c in self.session.cookies
        ]

    def load_cookies(self, cookies):
        """Replace the cookie jar with the output of ``dump_cookies``."""
        self.session.cookies.clear()
        for c in cookies or []:
            self.session.cookies.set_cookie(create_cookie(
                name=c["name"],
                value=c["value"],
                domain=c.get("domain", ""),
                path=c.get("path", "/"),
                secure=c.get("secure", False),
                expires=c.get("expires"),
            ))
