"""Client session context.

Learn: The client keeps its session in a small JSON file (the local
stand-in for browser storage) holding the token, the public profile,
and the cached chat transcript.

SessionContext makes the "auth state unknown" phase explicit: nothing
can be read from it until load() has run, so no caller can mistake
"not loaded yet" for "logged out". After load() it is ready, and
login()/logout() keep memory and storage in step.

Logging out only forgets the token locally. The server keeps no session
list, so a copied token stays valid until it expires.
"""

import json
import os
import tempfile
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from chatgate.schemas.auth import PublicUser

DEFAULT_SESSION_FILE = Path.home() / ".chatgate" / "session.json"
EXPIRED_COOKIE_DATE = "Thu, 01 Jan 1970 00:00:00 GMT"


class SessionNotLoadedError(RuntimeError):
    """Session state was read before SessionContext.load()."""


@dataclass
class ChatMessage:
    role: str  # "user" or "assistant"
    content: str
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class SessionStorage:
    """Whole-file JSON storage for the client session."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_SESSION_FILE

    def read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".session-")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)

    def update(self, **changes: Any) -> None:
        """Set keys (or delete them when the value is None) and rewrite."""
        data = self.read()
        for key, value in changes.items():
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
        self.write(data)


class SessionContext:
    """{user, token} for the current client, plus the cached transcript."""

    def __init__(self, storage: SessionStorage, cookie_name: str = "token"):
        self.storage = storage
        self.cookie_name = cookie_name
        self._ready = False
        self._user: Optional[PublicUser] = None
        self._token: Optional[str] = None

    # ─── Lifecycle ───────────────────────────────────────

    def load(self) -> "SessionContext":
        """Read stored state. Both token and user must be present to count."""
        data = self.storage.read()
        token, user = data.get("token"), data.get("user")
        self._token, self._user = None, None
        if token and isinstance(user, dict):
            try:
                self._user = PublicUser.model_validate(user)
                self._token = token
            except ValueError:
                self._user = None
        self._ready = True
        return self

    @property
    def ready(self) -> bool:
        return self._ready

    def _ensure_ready(self) -> None:
        if not self._ready:
            raise SessionNotLoadedError("call SessionContext.load() first")

    # ─── State ───────────────────────────────────────────

    @property
    def user(self) -> Optional[PublicUser]:
        self._ensure_ready()
        return self._user

    @property
    def token(self) -> Optional[str]:
        self._ensure_ready()
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def login(self, token: str, user: PublicUser) -> None:
        self._ensure_ready()
        self._token, self._user = token, user
        self.storage.update(token=token, user=user.model_dump())

    def logout(self) -> None:
        """Forget token and user. The chat transcript is kept."""
        self._ensure_ready()
        self._token, self._user = None, None
        self.storage.update(token=None, user=None)

    # ─── Cookie ──────────────────────────────────────────

    def cookie_header(self) -> Optional[str]:
        """Site-wide session cookie for the route guard (no explicit expiry)."""
        if not self.token:
            return None
        return f"{self.cookie_name}={self.token}; Path=/"

    def clear_cookie_header(self) -> str:
        return f"{self.cookie_name}=; Path=/; Expires={EXPIRED_COOKIE_DATE}"

    # ─── Transcript ──────────────────────────────────────

    def messages(self) -> list[ChatMessage]:
        raw = self.storage.read().get("messages") or []
        out = []
        for item in raw:
            if not isinstance(item, dict) or "role" not in item or "content" not in item:
                continue
            message = ChatMessage(role=item["role"], content=item["content"])
            if item.get("timestamp"):
                message.timestamp = item["timestamp"]
            out.append(message)
        return out

    def append_message(self, role: str, content: str) -> ChatMessage:
        message = ChatMessage(role=role, content=content)
        history = [asdict(m) for m in self.messages()]
        history.append(asdict(message))
        self.storage.update(messages=history)
        return message

    def clear_messages(self) -> None:
        self.storage.update(messages=None)
