from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

SESSION_KEY = "session_user_id"


class SessionStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemorySessionStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileSessionStore:
    """Key-value pairs persisted as a JSON object readable only by the owner.

    Writes go through a temp file in the same directory and an atomic replace,
    so a crash mid-write leaves the previous contents intact.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (UnicodeDecodeError, json.JSONDecodeError):
            # Unreadable contents count as no saved values; the next write replaces them.
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _dump(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".session-")
        try:
            os.chmod(tmp, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = str(value)
        self._dump(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key not in data:
            return
        del data[key]
        self._dump(data)
