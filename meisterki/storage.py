"""
Flat JSON file storage — offers, users and refresh tokens.

One JSON file per record under settings.DATA_DIR:
    offers/<record_id>.json
    users/<user_id>.json
    tokens/<token_hash>.json

Writes go to a temp file in the same directory and are renamed into place,
so readers never see a half-written record. JsonStore.create() links the
temp file instead and fails if the key is taken.
"""

import hashlib
import json
import logging
import os
import re
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .config import settings
from .schemas import Offer

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class StorageError(Exception):
    """A record could not be written, read or parsed."""


class RecordExistsError(StorageError):
    """create() found a record under the key already."""


class JsonStore:
    """A directory of JSON records addressed by key."""

    def __init__(self, root):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        key = str(key)
        if not _KEY_PATTERN.match(key) or key.startswith("."):
            raise StorageError(f"Invalid record key: {key!r}")
        return self.root / f"{key}.json"

    def _write_temp(self, record: dict, path: Path) -> str:
        """Serialize record into a temp file next to path; returns the temp name."""
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record, f, ensure_ascii=False, indent=2)
        except (OSError, TypeError, ValueError) as e:
            os.remove(tmp_name)
            raise StorageError(f"Could not write {path}: {e}") from e
        return tmp_name

    def save(self, key: str, record: dict) -> Path:
        """Write or overwrite a record."""
        path = self._path(key)
        tmp_name = self._write_temp(record, path)
        try:
            os.replace(tmp_name, path)
        except OSError as e:
            os.remove(tmp_name)
            raise StorageError(f"Could not write {path}: {e}") from e
        return path

    def create(self, key: str, record: dict) -> Path:
        """
        Write a record only if the key is still free.
        The complete temp file is hard-linked into place, which fails when the
        target exists, so concurrent creators of one key cannot both succeed.
        """
        path = self._path(key)
        tmp_name = self._write_temp(record, path)
        try:
            os.link(tmp_name, path)
        except FileExistsError as e:
            raise RecordExistsError(f"Record already exists: {path}") from e
        except OSError as e:
            raise StorageError(f"Could not write {path}: {e}") from e
        finally:
            os.remove(tmp_name)
        return path

    def load(self, key: str) -> Optional[dict]:
        """Load a record, or None if it does not exist."""
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        path.unlink()
        return True

    def keys(self) -> list:
        if not self.root.exists():
            return []
        return sorted(
            p.stem for p in self.root.glob("*.json") if not p.name.startswith(".")
        )

    def list(self) -> list:
        """All records, in key order."""
        records = []
        for key in self.keys():
            record = self.load(key)
            if record is not None:
                records.append(record)
        return records


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class OfferStore:
    """
    Saved offers, owned by a user.

    Offer ids are only unique to the millisecond, so each saved offer gets its
    own record id: "<offer id>-<random hex>".
    """

    def __init__(self, root=None):
        self.store = JsonStore(root or Path(settings.DATA_DIR) / "offers")

    def save(self, offer: Offer, owner_id: int) -> dict:
        record_id = f"{offer.id}-{uuid.uuid4().hex[:8]}"
        record = {
            "record_id": record_id,
            "owner_id": owner_id,
            "saved_at": _now_iso(),
            "offer": offer.to_json(),
        }
        self.store.save(record_id, record)
        logger.info("Saved offer %s as %s for user %s", offer.id, record_id, owner_id)
        return record

    def get(self, record_id: str) -> Optional[dict]:
        return self.store.load(record_id)

    def list_for_owner(self, owner_id: int) -> list:
        """Saved offers of one user, newest first. Unreadable records are skipped."""
        records = []
        for key in self.store.keys():
            try:
                record = self.store.load(key)
            except StorageError:
                logger.warning("Skipping unreadable offer record %s", key, exc_info=True)
                continue
            if isinstance(record, dict) and record.get("owner_id") == owner_id:
                records.append(record)
        return sorted(records, key=lambda r: r.get("saved_at", ""), reverse=True)


class UserStore:
    """
    User accounts with sequential integer ids.

    Each email is claimed under users/by_email/<sha256 of the address> before
    the account is written, so one address maps to at most one account.
    """

    MAX_ID_ATTEMPTS = 20

    def __init__(self, root=None):
        self.store = JsonStore(root or Path(settings.DATA_DIR) / "users")
        self.emails = JsonStore(self.store.root / "by_email")

    def _next_id(self) -> int:
        ids = [int(k) for k in self.store.keys() if k.isdigit()]
        return max(ids, default=0) + 1

    @staticmethod
    def _email_key(email: str) -> str:
        return hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()

    def create(self, email: str, password_hash: str) -> dict:
        """
        Create an account.

        Raises:
            RecordExistsError if the email is already registered.
            StorageError if no free id was found.
        """
        email_key = self._email_key(email)
        self.emails.create(email_key, {"email": email.strip().lower()})

        now = _now_iso()
        user = {
            "id": None,
            "email": email,
            "password_hash": password_hash,
            "company_name": None,
            "company_address": None,
            "company_email": None,
            "company_phone": None,
            "created_at": now,
            "updated_at": now,
        }
        try:
            for _ in range(self.MAX_ID_ATTEMPTS):
                user["id"] = self._next_id()
                try:
                    self.store.create(str(user["id"]), user)
                    break
                except RecordExistsError:
                    continue
            else:
                raise StorageError(f"No free user id after {self.MAX_ID_ATTEMPTS} attempts")
        except StorageError:
            self.emails.delete(email_key)
            raise

        self.emails.save(email_key, {"email": email.strip().lower(), "user_id": user["id"]})
        logger.info("Created user %s (%s)", user["id"], email)
        return user

    def get(self, user_id: int) -> Optional[dict]:
        return self.store.load(str(user_id))

    def get_by_email(self, email: str) -> Optional[dict]:
        wanted = email.strip().lower()
        for user in self.store.list():
            if str(user.get("email", "")).lower() == wanted:
                return user
        return None

    def update(self, user_id: int, **fields) -> dict:
        user = self.get(user_id)
        if user is None:
            raise StorageError(f"User {user_id} not found")
        user.update(fields)
        user["updated_at"] = _now_iso()
        self.store.save(str(user_id), user)
        return user


class TokenStore:
    """Hashed refresh tokens. The raw token is never written to disk."""

    def __init__(self, root=None):
        self.store = JsonStore(root or Path(settings.DATA_DIR) / "tokens")

    def save(self, token_hash: str, user_id: int, token_type: str, expires_at: datetime) -> dict:
        record = {
            "user_id": user_id,
            "token_type": token_type,
            "expires_at": expires_at.isoformat(),
        }
        self.store.save(token_hash, record)
        return record

    def get(self, token_hash: str) -> Optional[dict]:
        return self.store.load(token_hash)
