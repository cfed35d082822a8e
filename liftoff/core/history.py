"""
Usage history with time-based decay.

The backing store is a CSV table with a header row:

    name,value,num_used

Every record loses one use per fully elapsed decay window since the
file was last written. Records that reach zero are dropped on load.

Concurrent launcher processes sharing one file can lose updates; the
store is single-writer.
"""

import csv
import os
import tempfile
import time
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from .errors import HistoryLoadError, HistorySaveError
from .models import UsageRecord


FIELDS = ["name", "value", "num_used"]
SECONDS_PER_HOUR = 3600


def elapsed_windows(now: float, last_modified: float, decrease_interval: int) -> int:
    """Number of whole decay windows between two timestamps.

    ``decrease_interval`` is in hours; 0 disables decay.
    """
    if decrease_interval <= 0:
        return 0
    window = SECONDS_PER_HOUR * decrease_interval
    return max(int(now) // window - int(last_modified) // window, 0)


class UsageHistory:
    """Persisted launch counts bound to one file path."""

    def __init__(self, path: Path, records: Optional[List[UsageRecord]] = None):
        self.path = Path(path)
        self._records: List[UsageRecord] = list(records or [])

    @property
    def records(self) -> List[UsageRecord]:
        return self._records

    @classmethod
    def load(
        cls,
        path: Path,
        decrease_interval: int = 0,
        now: Optional[float] = None
    ) -> "UsageHistory":
        """
        Read the store at ``path`` and apply decay.

        A missing file yields an empty history bound to ``path``. Any
        other read or parse failure raises HistoryLoadError.
        """
        path = Path(path).expanduser()
        history = cls(path)

        if not path.exists():
            logger.info(f"History file {path} does not exist, will be created on saving")
            return history

        try:
            last_modified = path.stat().st_mtime
            with open(path, "r", newline="", encoding="utf-8") as f:
                rows = list(csv.DictReader(f))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise HistoryLoadError(f"Failed to read history {path}: {e}") from e

        if now is None:
            now = time.time()
        elapsed = elapsed_windows(now, last_modified, decrease_interval)

        for line_no, row in enumerate(rows, start=2):
            record = cls._parse_row(row, path, line_no)
            record.num_used = max(record.num_used - elapsed, 0)
            if record.num_used > 0:
                history._records.append(record)

        logger.debug(
            f"Loaded {len(history._records)}/{len(rows)} history records "
            f"from {path} ({elapsed} decay windows elapsed)"
        )
        return history

    @staticmethod
    def _parse_row(row: Dict[str, Optional[str]], path: Path, line_no: int) -> UsageRecord:
        name, value, count = row.get("name"), row.get("value"), row.get("num_used")
        if not name or value is None or count is None:
            raise HistoryLoadError(f"{path}:{line_no}: incomplete history record")
        try:
            num_used = int(count)
        except ValueError:
            raise HistoryLoadError(f"{path}:{line_no}: invalid num_used '{count}'") from None
        if num_used < 0:
            raise HistoryLoadError(f"{path}:{line_no}: negative num_used {num_used}")
        return UsageRecord(name=name, value=value, num_used=num_used)

    def get(self, name: str) -> Optional[UsageRecord]:
        for record in self._records:
            if record.name == name:
                return record
        return None

    def increment(self, name: str, value: str) -> UsageRecord:
        """Count one launch of ``name``; the latest value wins."""
        record = self.get(name)
        if record is None:
            record = UsageRecord(name=name, value=value, num_used=1)
            self._records.append(record)
        else:
            record.num_used += 1
            record.value = value
        return record

    def save(self) -> None:
        """
        Replace the backing file with the current records.

        Writes a temporary file next to the target and renames it over
        the existing file. Raises HistorySaveError; in-memory state is kept.
        """
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=FIELDS)
                writer.writeheader()
                for record in self._records:
                    writer.writerow({
                        "name": record.name,
                        "value": record.value,
                        "num_used": record.num_used
                    })
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise HistorySaveError(f"Failed to save history {self.path}: {e}") from e

        logger.debug(f"Saved {len(self._records)} history records to {self.path}")

    def __len__(self) -> int:
        return len(self._records)
