"""
Hot-reload snapshots: what to persist so a later process can resume the
session without scanning a QR code again.

Snapshot = credentials + cookie jar + login info + domain + login uuid,
plus the last sync cursor and current user when known. Encoded as a single
JSON object; key names are part of the on-disk format and must not change.
"""

import io
import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import log
from .errors import ParseError, StorageError
from .models import BaseRequest, LoginInfo, SyncKey


# ─── Snapshot record ─────────────────────────────────────────────

@dataclass
class HotReloadStorageItem:
    base_request: BaseRequest
    login_info: LoginInfo
    domain: str
    uuid: str
    jar: list = field(default_factory=list)
    sync_key: Optional[SyncKey] = None
    user: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            "baseRequest": self.base_request.to_dict(),
            "jar": self.jar,
            "loginInfo": self.login_info.to_dict(),
            "domain": self.domain,
            "uuid": self.uuid,
            "syncKey": self.sync_key.to_dict() if self.sync_key is not None else None,
            "user": self.user,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data) -> "HotReloadStorageItem":
        if not isinstance(data, dict):
            raise ParseError("snapshot: expected a JSON object")
        for key in ("baseRequest", "loginInfo", "domain"):
            if not data.get(key):
                raise ParseError(f"snapshot: missing {key}")
        jar = data.get("jar") or []
        if not isinstance(jar, list):
            raise ParseError("snapshot: jar must be a list")
        sync_key = data.get("syncKey")
        return cls(
            base_request=BaseRequest.from_dict(data["baseRequest"]),
            login_info=LoginInfo.from_dict(data["loginInfo"]),
            domain=data["domain"],
            uuid=data.get("uuid") or "",
            jar=jar,
            sync_key=SyncKey.from_dict(sync_key) if sync_key else None,
            user=data.get("user"),
        )

    @classmethod
    def from_json(cls, text) -> "HotReloadStorageItem":
        if not text or not text.strip():
            raise ParseError("snapshot: empty")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"snapshot: invalid JSON ({e})") from e
        return cls.from_dict(data)


# ─── Persistence targets ─────────────────────────────────────────

class HotReloadStorage:
    """Where snapshots go. ``write`` replaces whatever was stored before."""

    def read(self) -> str:
        raise NotImplementedError

    def write(self, data: str) -> None:
        raise NotImplementedError


class FileHotReloadStorage(HotReloadStorage):
    """Snapshot kept in a single JSON file. Writes go through a temp file."""

    def __init__(self, path):
        self.path = Path(path)

    def read(self):
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except OSError as e:
            raise StorageError(f"cannot read {self.path}: {e}") from e

    def write(self, data):
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(data, encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise StorageError(f"cannot write {self.path}: {e}") from e
        log.info("Hot reload snapshot saved to %s", self.path)

    def __repr__(self):
        return f"FileHotReloadStorage({str(self.path)!r})"


class MemoryHotReloadStorage(HotReloadStorage):
    """In-process snapshot; handy for tests and for handing state between bots."""

    def __init__(self, data=""):
        self._data = data
        self._lock = threading.Lock()

    def read(self):
        with self._lock:
            return self._data

    def write(self, data):
        with self._lock:
            self._data = data


def as_storage(target):
    """Accept a HotReloadStorage, a path, or None."""
    if target is None or isinstance(target, HotReloadStorage):
        return target
    if isinstance(target, (str, Path)):
        return FileHotReloadStorage(target)
    raise TypeError(f"unsupported hot reload storage: {target!r}")


def write_item(writer, item):
    """Encode ``item`` into any object with ``write`` (file, StringIO, storage)."""
    text = item.to_json()
    if isinstance(writer, (io.RawIOBase, io.BufferedIOBase)):
        writer.write(text.encode("utf-8"))
    else:
        writer.write(text)
