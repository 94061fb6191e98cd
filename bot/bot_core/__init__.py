"""
bot_core — Web chat session & message sync core
===============================================
Architecture: caller's thread logs in; one daemon thread long-polls.

  constants.py    → Version, protocol codes, QR URLs, timeouts
  config.py       → Paths, logging, config load/save, helpers
  errors.py       → BotError taxonomy, Ret status codes
  http_client.py  → HTTP session with retry/pooling (the cookie store)
  models.py       → Credentials, login info, sync cursor, poll signal
  message.py      → Message event bound to its bot
  caller.py       → Caller: transport contract + cookie snapshotting
  storage.py      → Hot-reload snapshot codec + storage targets
  hooks.py        → BotHooks: every callback slot
  login.py        → ScanLogin / HotLogin / PushLogin strategies
  classifier.py   → Sync error classifiers (default, backoff)
  sync.py         → SyncLoop background thread
  bot.py          → Bot lifecycle, default_bot(), QR helpers
"""

from .bot import Bot, BotState, default_bot, get_qrcode_url, print_qrcode_url
from .caller import Caller
from .classifier import BackoffErrorClassifier, DefaultErrorClassifier, ErrorClassifier
from .config import load_config, save_config, setup_logging
from .errors import (
    BotError, LoginAbortedError, NotLoggedInError, ParseError, Ret, RetError,
    StorageError, UsageError,
)
from .hooks import BotHooks
from .login import HotLogin, HotLoginOptions, PushLogin, PushLoginOptions, ScanLogin
from .message import Message
from .models import (
    BaseRequest, CheckLoginResponse, InitResponse, LoginInfo, Storage,
    SyncCheckResponse, SyncKey, SyncResponse,
)
from .storage import FileHotReloadStorage, HotReloadStorage, HotReloadStorageItem, MemoryHotReloadStorage
