"""User profile persistence (versioned JSON + atomic write)."""

import json
import os
import re
import tempfile
from pathlib import Path

import structlog
from pydantic import ValidationError

from ..errors import CorruptProfileError, InvalidArgumentError, StorageIOError
from ..models.assessment import AssessmentResult
from ..models.user_profile import UserProfile
from . import score_history

logger = structlog.get_logger()

SCHEMA_VERSION = 1
_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")


def validate_user_id(user_id: str) -> str:
    if not _USER_ID_PATTERN.match(user_id) or ".." in user_id:
        raise InvalidArgumentError(
            f"Invalid user id {user_id!r}: use letters, digits, '.', '_' or '-'"
        )
    return user_id


class ProfileStore:
    """Sole reader and writer of persisted profiles and assessment history.

    Layout under ``data_dir``::

        profiles/<user_id>.json
        history/<user_id>/results-<UTC timestamp>.json

    A single writer per user is assumed; concurrent writers get
    last-write-wins on the profile file.

    Args:
        data_dir: Root directory for all persisted state.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    @property
    def profiles_dir(self) -> Path:
        return self.data_dir / "profiles"

    def get_profile_path(self, user_id: str) -> Path:
        return self.profiles_dir / f"{validate_user_id(user_id)}.json"

    def history_dir(self, user_id: str) -> Path:
        return self.data_dir / "history" / validate_user_id(user_id)

    def exists(self, user_id: str) -> bool:
        return self.get_profile_path(user_id).exists()

    def load(self, user_id: str) -> UserProfile:
        """Load a profile, or a fresh default one if none is stored.

        Raises:
            CorruptProfileError: If the stored record cannot be decoded.
            StorageIOError: If the file exists but cannot be read.
        """
        path = self.get_profile_path(user_id)
        if not path.exists():
            logger.info("profile_not_found", user_id=user_id)
            return UserProfile(user_id=user_id)

        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise CorruptProfileError(user_id, path, "not UTF-8 text") from e
        except OSError as e:
            raise StorageIOError(f"Cannot read profile {path}: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise CorruptProfileError(user_id, path, f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise CorruptProfileError(user_id, path, "expected a JSON object")

        if "schema_version" in data:
            version = data["schema_version"]
            if not isinstance(version, int) or version > SCHEMA_VERSION:
                raise CorruptProfileError(user_id, path, f"unsupported schema version {version!r}")
            record = data.get("profile")
            if not isinstance(record, dict):
                raise CorruptProfileError(user_id, path, "missing profile record")
        else:
            # Bare record written by the legacy shell tool
            record = data
            logger.info("legacy_profile_loaded", user_id=user_id)

        try:
            profile = UserProfile.model_validate({**record, "user_id": user_id})
        except ValidationError as e:
            raise CorruptProfileError(
                user_id, path, f"{e.error_count()} invalid field(s)"
            ) from e
        logger.debug("profile_loaded", user_id=user_id)
        return profile

    def save(self, profile: UserProfile) -> None:
        """Write the full profile atomically (temp file then rename).

        Raises:
            StorageIOError: If writing fails. The previous file stays intact.
        """
        path = self.get_profile_path(profile.user_id)
        payload = {"schema_version": SCHEMA_VERSION, "profile": profile.model_dump(mode="json")}
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", dir=path.parent, delete=False, suffix=".json", encoding="utf-8"
            ) as tmp:
                tmp_name = tmp.name
                json.dump(payload, tmp, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise StorageIOError(f"Cannot save profile {path}: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
        logger.info("profile_saved", user_id=profile.user_id)

    def append_result(self, user_id: str, result: AssessmentResult) -> Path:
        """Append a result to the user's history. Never rewrites earlier records."""
        return score_history.append_result(self.history_dir(user_id), result)

    def read_history(self, user_id: str) -> list[AssessmentResult]:
        return score_history.read_history(self.history_dir(user_id))
