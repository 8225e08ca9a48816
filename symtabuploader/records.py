"""Append-only record logs that remember which files were already processed.

A record log is a plain UTF-8 text file with one record per line:

    <absolute file path> --> <sha-1 of content>[ --> <extra info>]

Two logs are kept per output directory: the symbol log (binary -> generated
symbol file, so unchanged binaries are not re-processed) and the upload log
(files whose exact content was already uploaded).

Rules:
- A log never holds more than LOG_RECORD_MAXIMUM_NUMBER records. Appending to a
  full log truncates it first; a lookup that reads past the maximum deletes it.
  There is no partial eviction.
- Lookups match on path and on the file's current hash. When a key appears more
  than once, the last line wins.
- Every failure (missing file, unreadable log) is logged and reported as
  "not found" / False. Callers redo the work rather than skip it. Invalid
  UTF-8 in the log only spoils the lines it sits on.
- Single writer only: no locking, no atomic rename.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from symtabuploader.config import LOG_RECORD_MAXIMUM_NUMBER, LOG_RECORD_SEPARATOR
from symtabuploader.hashing import file_sha1

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class Record:
    file_path: str
    content_hash: str
    extra_info: Optional[str] = None

    def to_line(self) -> str:
        fields = [self.file_path, self.content_hash]
        if self.extra_info is not None:
            fields.append(self.extra_info)
        return LOG_RECORD_SEPARATOR.join(fields) + "\n"

    @classmethod
    def parse(cls, line: str) -> Optional["Record"]:
        """Parse one log line. Returns None for malformed lines (fewer than two fields)."""
        fields = line.rstrip("\r\n").split(LOG_RECORD_SEPARATOR)
        if len(fields) < 2:
            return None
        extra = fields[2] if len(fields) > 2 else None
        return cls(fields[0], fields[1], extra)


def _absolute(path: PathLike) -> str:
    return str(Path(path).absolute())


class RecordLog:
    """Bounded, append-only log of (file path, content hash) -> extra info."""

    def __init__(self, path: PathLike, max_records: int = LOG_RECORD_MAXIMUM_NUMBER) -> None:
        self._path = Path(path)
        self._max_records = max_records

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_records(self) -> int:
        return self._max_records

    def _count_records(self) -> int:
        if not self._path.exists():
            return 0
        with open(self._path, "rb") as f:
            return sum(1 for _ in f)

    def append(self, file_path: PathLike, content_hash: str, extra_info: Optional[str] = None) -> bool:
        """Append one record. Clears the whole log first when it is already full."""
        record = Record(_absolute(file_path), content_hash, extra_info)
        try:
            if self._count_records() >= self._max_records:
                log.info(
                    "Log %s has reached %d records; clearing it before appending",
                    self._path, self._max_records,
                )
                with open(self._path, "w", encoding="utf-8"):
                    pass
            with open(self._path, "a", encoding="utf-8", newline="\n") as f:
                f.write(record.to_line())
        except (OSError, UnicodeError) as e:
            log.warning("Could not append to log %s: %s", self._path, e)
            return False
        log.debug("Logged %s (%s) to %s", record.file_path, record.content_hash, self._path.name)
        return True

    def record(self, file_path: PathLike, extra_info: Optional[str] = None) -> bool:
        """Append a record keyed by the file's current content hash."""
        content_hash = file_sha1(file_path)
        if content_hash is None:
            return False
        return self.append(file_path, content_hash, extra_info)

    def lookup(self, file_path: PathLike) -> Optional[str]:
        """
        Extra info recorded for file_path with its current content, "" when recorded
        without extra info, or None when not recorded (or the file/log cannot be read).
        """
        if not self._path.exists() or not Path(file_path).exists():
            return None
        current_hash = file_sha1(file_path)
        if current_hash is None:
            return None
        key = (_absolute(file_path), current_hash)
        # Later lines overwrite earlier ones for the same key
        seen: Dict[Tuple[str, str], str] = {}
        overflow = False
        try:
            with open(self._path, "r", encoding="utf-8", errors="replace") as f:
                for count, line in enumerate(f):
                    if count >= self._max_records:
                        overflow = True
                        break
                    rec = Record.parse(line)
                    if rec is None:
                        continue
                    seen[(rec.file_path, rec.content_hash)] = rec.extra_info or ""
        except (OSError, UnicodeError) as e:
            log.warning("Could not read log %s: %s", self._path, e)
            return None
        if overflow:
            log.info(
                "Log %s has more than %d records; clearing it",
                self._path, self._max_records,
            )
            try:
                self._path.unlink(missing_ok=True)
            except OSError as e:
                log.warning("Could not delete log %s: %s", self._path, e)
        return seen.get(key)

    def exists(self, file_path: PathLike) -> bool:
        """True if file_path with its current content is recorded."""
        return self.lookup(file_path) is not None

    def records(self) -> List[Record]:
        """All well-formed records in file order (empty when the log is missing or unreadable)."""
        if not self._path.exists():
            return []
        try:
            with open(self._path, "r", encoding="utf-8", errors="replace") as f:
                parsed = [Record.parse(line) for line in f]
        except (OSError, UnicodeError) as e:
            log.warning("Could not read log %s: %s", self._path, e)
            return []
        return [r for r in parsed if r is not None]

    def __len__(self) -> int:
        try:
            return self._count_records()
        except (OSError, UnicodeError):
            return 0
