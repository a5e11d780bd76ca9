"""Actor session: bearer token and cached profile.

The session is an explicit object handed to every service instead of being
parsed out of storage inside each handler. ``SessionStore`` persists it as a
JSON document under one fixed key.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field

from foodswipe.config.settings import settings
from foodswipe.core.exceptions import MissingCredentialsError
from foodswipe.models.order import Actor
from foodswipe.schemas.base import BaseSchema

logger = logging.getLogger(__name__)


class Profile(BaseSchema):
    """Minimal profile fields cached alongside the token."""
    user_id: Optional[str] = Field(None, validation_alias=AliasChoices("_id", "id", "userId", "user_id"))
    token: Optional[str] = None
    role: Actor = Actor.CUSTOMER
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    restaurant_id: Optional[str] = None
    rider_id: Optional[str] = None
    address: Optional[str] = None
    house_number: Optional[str] = None


class SessionStore:
    """Single-file key/value storage for the session document."""

    def __init__(self, path: Optional[str] = None, key: Optional[str] = None):
        self.path = Path(path or settings.SESSION_FILE)
        self.key = key or settings.SESSION_KEY

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read session file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> Optional[Dict[str, Any]]:
        value = self._read_all().get(self.key)
        return value if isinstance(value, dict) else None

    def save(self, value: Dict[str, Any]) -> None:
        data = self._read_all()
        data[self.key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, default=str), encoding="utf-8")

    def delete(self) -> None:
        data = self._read_all()
        if self.key not in data:
            return
        del data[self.key]
        self.path.write_text(json.dumps(data, default=str), encoding="utf-8")


class Session:
    """The signed-in actor's token and profile."""

    def __init__(self, store: Optional[SessionStore] = None, profile: Optional[Profile] = None):
        self.store = store
        self.profile = profile

    @classmethod
    def load(cls, store: SessionStore) -> "Session":
        """Restore from storage; an unreadable document yields a signed-out session."""
        raw = store.load()
        profile = None
        if raw:
            try:
                profile = Profile.model_validate(raw)
            except ValueError as e:
                logger.warning(f"Discarding unreadable session document: {e}")
        return cls(store=store, profile=profile)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.profile and self.profile.token)

    @property
    def token(self) -> Optional[str]:
        return self.profile.token if self.profile else None

    @property
    def user_id(self) -> Optional[str]:
        return self.profile.user_id if self.profile else None

    @property
    def role(self) -> Optional[Actor]:
        return self.profile.role if self.profile else None

    def require_token(self) -> str:
        """Return the bearer token or raise MissingCredentialsError."""
        if not self.is_authenticated:
            raise MissingCredentialsError()
        return self.profile.token

    def sign_in(self, profile: Profile) -> None:
        self.profile = profile
        self._persist()

    def update_profile(self, **changes: Any) -> None:
        """Apply profile changes locally and persist them."""
        if self.profile is None:
            raise MissingCredentialsError()
        self.profile = self.profile.model_copy(update=changes)
        self._persist()

    def clear(self) -> None:
        """Forget the token and profile, in memory and on disk."""
        self.profile = None
        if self.store is not None:
            self.store.delete()
        logger.info("Session cleared")

    def _persist(self) -> None:
        if self.store is not None and self.profile is not None:
            self.store.save(self.profile.model_dump(by_alias=True, exclude_none=True, mode="json"))
