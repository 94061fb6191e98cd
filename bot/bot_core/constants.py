"""
Constants: protocol codes, login/QR endpoints, timeouts, defaults.
"""

BOT_VERSION = "1.0.0"

# ─── Service ─────────────────────────────────────────────────────
DEFAULT_DOMAIN = "wx.qq.com"
QRCODE_URL = "https://login.weixin.qq.com/qrcode/"   # + uuid → PNG

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

# ─── Login ───────────────────────────────────────────────────────
LOGIN_POLL_INTERVAL_SEC = 1    # Pause between confirmation polls
LOGIN_TIMEOUT_SEC = 300        # Give up waiting for a scan after 5 min

# check-login status codes
LOGIN_SUCCESS = "200"
LOGIN_SCANNED = "201"
LOGIN_EXPIRED = "400"
LOGIN_REJECTED = "403"
LOGIN_WAIT = "408"

# ─── Sync ────────────────────────────────────────────────────────
SYNC_SUCCESS = "0"             # retcode of a healthy poll

SELECTOR_NORMAL = "0"          # nothing new

SYNC_BACKOFF_INITIAL_SEC = 5   # Opt-in backoff on transport errors
SYNC_BACKOFF_MAX_SEC = 120
