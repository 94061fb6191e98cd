"""
Error taxonomy.

Transport failures are whatever the caller raises (``requests.RequestException``
for the stock session) and are never wrapped here.
"""

from enum import IntEnum


class BotError(Exception):
    """Base class for every error raised by bot_core."""


class Ret(IntEnum):
    """Negative status codes reported by the service."""

    TICKET_ERROR = -14
    LOGIC_ERROR = -2
    SYS_ERROR = -1
    PARAM_ERROR = 1
    FAILED_LOGIN_WARN = 1100       # logged out from the phone / another client
    FAILED_LOGIN_CHECK = 1101      # login check failed
    COOKIE_INVALID = 1102          # session went stale
    LOGIN_ENV_ABNORMALITY = 1203
    OPT_TOO_OFTEN = 1205

    @property
    def is_fatal(self):
        return self in FATAL_RETS


# The session is gone on the remote side; retrying cannot help.
FATAL_RETS = frozenset({
    Ret.FAILED_LOGIN_WARN,
    Ret.FAILED_LOGIN_CHECK,
    Ret.COOKIE_INVALID,
})


class RetError(BotError):
    """A recognised protocol status, distinct from transport errors."""

    def __init__(self, code, message=""):
        try:
            self.ret = Ret(int(code))
        except ValueError:
            self.ret = int(code)
        text = f"ret={int(code)}"
        if isinstance(self.ret, Ret):
            text = f"{text} ({self.ret.name.lower()})"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)

    @property
    def is_fatal(self):
        return isinstance(self.ret, Ret) and self.ret.is_fatal


class LoginAbortedError(BotError):
    """QR code expired, the user rejected the login, or nobody confirmed in time."""


class ParseError(BotError):
    """Malformed login payload or persisted snapshot."""


class UsageError(BotError):
    """Operation invoked in the wrong lifecycle state or with bad configuration."""


class NotLoggedInError(UsageError):
    """Operation needs an online session."""


class StorageError(BotError):
    """Persistence target could not be read or written."""
