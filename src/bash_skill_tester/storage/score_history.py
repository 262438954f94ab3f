"""Append-only assessment history: one JSON file per completed quiz."""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import structlog
from pydantic import ValidationError

from bash_skill_tester.errors import HistoryOrderError, StorageIOError
from bash_skill_tester.models.assessment import AssessmentResult

logger = structlog.get_logger()

HISTORY_PREFIX = "results-"
_STAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"


def _as_utc(timestamp: datetime) -> datetime:
    # Naive timestamps are taken as local time
    return timestamp.astimezone(timezone.utc)


def result_filename(timestamp: datetime) -> str:
    """File name for a result; lexical order equals chronological order."""
    return f"{HISTORY_PREFIX}{_as_utc(timestamp).strftime(_STAMP_FORMAT)}.json"


def _history_files(history_dir: Path) -> list[Path]:
    if not history_dir.exists():
        return []
    return sorted(history_dir.glob(f"{HISTORY_PREFIX}*.json"))


def latest_timestamp(history_dir: Path) -> datetime | None:
    """Timestamp of the newest committed result, read from its file name."""
    files = _history_files(history_dir)
    if not files:
        return None
    stamp = files[-1].stem.removeprefix(HISTORY_PREFIX)
    try:
        return datetime.strptime(stamp, _STAMP_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        logger.warning("history_filename_unparseable", path=str(files[-1]))
        return None


def append_result(history_dir: Path, result: AssessmentResult) -> Path:
    """Commit a result as a new history file.

    The file is written to a temporary name and then hard-linked into place,
    so a record is either complete or absent and an existing record is never
    overwritten.

    Raises:
        HistoryOrderError: If the result is not newer than the latest record.
        StorageIOError: If the file cannot be written.
    """
    try:
        history_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageIOError(f"Cannot create history directory {history_dir}: {e}") from e

    latest = latest_timestamp(history_dir)
    if latest is not None and _as_utc(result.timestamp) <= latest:
        raise HistoryOrderError(
            f"Result at {result.timestamp.isoformat()} is not newer than the latest "
            f"recorded result ({latest.isoformat()})"
        )

    path = history_dir / result_filename(result.timestamp)
    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", dir=history_dir, delete=False, suffix=".tmp", encoding="utf-8"
        ) as tmp:
            tmp_name = tmp.name
            json.dump(result.model_dump(mode="json"), tmp, indent=2)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.link(tmp_name, path)
    except FileExistsError as e:
        raise HistoryOrderError(f"A result is already recorded at {path.name}") from e
    except OSError as e:
        raise StorageIOError(f"Cannot write assessment result {path}: {e}") from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)

    logger.info("assessment_recorded", path=str(path), topic=result.topic)
    return path


def read_history(history_dir: Path) -> list[AssessmentResult]:
    """Read all results, oldest first. Unparseable records are skipped."""
    results = []
    for path in _history_files(history_dir):
        try:
            results.append(AssessmentResult.model_validate_json(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, ValidationError):
            logger.warning("history_record_parse_error", path=str(path))
    return results
