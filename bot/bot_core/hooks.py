"""
BotHooks — every callback the bot invokes, in one place.

All slots default to None (nothing is called) except where noted.
"""

from dataclasses import dataclass, fields
from typing import Any, Callable, Optional

from .errors import UsageError


@dataclass
class BotHooks:
    # Receives the login uuid; show it as a QR code. Required for scan login.
    uuid_callback: Optional[Callable[[str], Any]] = None
    # Phone scanned the code; body carries the avatar payload.
    scan_callback: Optional[Callable[[bytes], Any]] = None
    # Phone confirmed; body is the login redirect payload.
    login_callback: Optional[Callable[[bytes], Any]] = None
    # Session is ending (first transition to Exited only). Receives the bot.
    logout_callback: Optional[Callable[[Any], Any]] = None
    # Every poll signal, good or bad. Receives SyncCheckResponse.
    sync_check_callback: Optional[Callable[[Any], Any]] = None
    # One call per fetched Message, in arrival order, on the sync thread.
    message_handler: Optional[Callable[[Any], Any]] = None
    # error -> keep polling? None = DefaultErrorClassifier for the bot.
    message_error_handler: Optional[Callable[[BaseException], bool]] = None

    def validate(self, require_uuid_callback=False):
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None and not callable(value):
                raise UsageError(f"hook {f.name} must be callable, got {type(value).__name__}")
        if require_uuid_callback and self.uuid_callback is None:
            raise UsageError("uuid_callback is required to display the login QR code")
