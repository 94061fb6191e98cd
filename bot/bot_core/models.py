"""
Session state records: credentials, login metadata, sync cursor, poll signal.

JSON keys follow the service's own field names so that snapshots and
request bodies agree.
"""

from dataclasses import dataclass, field
from typing import Optional

from .constants import SYNC_SUCCESS, SELECTOR_NORMAL
from .errors import ParseError, RetError


def _require(data, *keys, what):
    if not isinstance(data, dict):
        raise ParseError(f"{what}: expected an object, got {type(data).__name__}")
    missing = [k for k in keys if data.get(k) in (None, "")]
    if missing:
        raise ParseError(f"{what}: missing {', '.join(missing)}")


# ─── Credentials ─────────────────────────────────────────────────

@dataclass(frozen=True)
class BaseRequest:
    """Credentials attached to every call. Replaced wholesale on login."""

    uin: str
    sid: str
    skey: str
    device_id: str

    def to_dict(self) -> dict:
        return {
            "Uin": self.uin,
            "Sid": self.sid,
            "Skey": self.skey,
            "DeviceID": self.device_id,
        }

    @classmethod
    def from_dict(cls, data) -> "BaseRequest":
        _require(data, "Uin", "Sid", "Skey", "DeviceID", what="BaseRequest")
        return cls(
            uin=str(data["Uin"]),
            sid=data["Sid"],
            skey=data["Skey"],
            device_id=data["DeviceID"],
        )


# ─── Session metadata ────────────────────────────────────────────

@dataclass(frozen=True)
class LoginInfo:
    """Account identifiers issued by the login exchange."""

    skey: str
    wxsid: str
    wxuin: str
    pass_ticket: str = ""
    is_grayscale: int = 0
    ret: int = 0
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "Ret": self.ret,
            "Message": self.message,
            "SKey": self.skey,
            "WxSid": self.wxsid,
            "WxUin": self.wxuin,
            "PassTicket": self.pass_ticket,
            "IsGrayScale": self.is_grayscale,
        }

    @classmethod
    def from_dict(cls, data) -> "LoginInfo":
        _require(data, "SKey", "WxSid", "WxUin", what="LoginInfo")
        ret = int(data.get("Ret") or 0)
        if ret != 0:
            raise RetError(ret, data.get("Message", ""))
        return cls(
            skey=data["SKey"],
            wxsid=data["WxSid"],
            wxuin=str(data["WxUin"]),
            pass_ticket=data.get("PassTicket", ""),
            is_grayscale=int(data.get("IsGrayScale") or 0),
            ret=ret,
            message=data.get("Message", ""),
        )


# ─── Sync cursor ─────────────────────────────────────────────────

@dataclass(frozen=True)
class SyncKey:
    """Opaque progress token. Only ever replaced, never edited."""

    items: tuple = ()

    def __str__(self):
        return "|".join(f"{k}_{v}" for k, v in self.items)

    def to_dict(self) -> dict:
        return {
            "Count": len(self.items),
            "List": [{"Key": k, "Val": v} for k, v in self.items],
        }

    @classmethod
    def from_dict(cls, data) -> "SyncKey":
        if not data:
            return cls()
        if not isinstance(data, dict) or not isinstance(data.get("List", []), list):
            raise ParseError("SyncKey: expected {'Count': n, 'List': [...]}")
        try:
            items = tuple((int(e["Key"]), int(e["Val"])) for e in data.get("List", []))
        except (KeyError, TypeError, ValueError) as e:
            raise ParseError(f"SyncKey: bad entry ({e})") from e
        return cls(items=items)


# ─── Remote responses ────────────────────────────────────────────

@dataclass
class InitResponse:
    """Result of the full initialization call. ``sync_key`` is the live cursor."""

    user: dict
    sync_key: SyncKey = field(default_factory=SyncKey)
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class SyncCheckResponse:
    """Poll signal: a status code plus a selector."""

    retcode: str
    selector: str

    def success(self) -> bool:
        return self.retcode == SYNC_SUCCESS

    def normal(self) -> bool:
        """True when there is nothing new to fetch."""
        return self.selector == SELECTOR_NORMAL

    def err(self):
        if self.success():
            return None
        if not str(self.retcode).lstrip("-").isdigit():
            return ParseError(f"sync check: bad retcode {self.retcode!r}")
        return RetError(self.retcode, f"selector={self.selector}")


@dataclass
class SyncResponse:
    """New events plus the cursor that follows them."""

    add_msg_list: list
    sync_key: SyncKey
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class CheckLoginResponse:
    """One answer from the login confirmation poll."""

    code: str
    body: bytes = b""


# ─── Session state ───────────────────────────────────────────────

@dataclass
class Storage:
    """
    Everything outgoing calls read. Owned by the Bot; the sync thread is the
    only writer while online (cursor updates).
    """

    request: Optional[BaseRequest] = None
    login_info: Optional[LoginInfo] = None
    response: Optional[InitResponse] = None
