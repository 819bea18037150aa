"""On-disk store for formula and recalculation events.

A project keeps a single log, ``logs/events.ndjson``, holding one
JSON object per line with sorted keys.  Formula failures, unknown
function names, depth overruns and recalculation summaries all land in
the same file; ``cellcalc events`` reads it back newest first.

Several processes may evaluate against the same project, so appends take
an exclusive ``fcntl.flock`` and reads take a shared one.  Where ``fcntl``
is missing (Windows) the log is written unlocked.
"""

from __future__ import annotations

import json
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from cellcalc.logging.events import CalcEvent

try:
    import fcntl

    _HAS_FCNTL = True
except ImportError:
    _HAS_FCNTL = False

LOG_FILENAME = "events.ndjson"

# Only the newest 2 MB of the log is parsed on read.
_TAIL_BYTES = 2 * 1024 * 1024

_READ_CAP = 2000


@contextmanager
def _flock(fd: int, op: int) -> Iterator[None]:
    if not _HAS_FCNTL:
        yield
        return
    fcntl.flock(fd, op)
    try:
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)


class EventSink:
    """Writer and reader for a project's formula event log."""

    def __init__(self, project_dir: Path, *, fsync: bool = False, tail_bytes: int | None = None) -> None:
        self.logs_dir = Path(project_dir) / "logs"
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        self._fsync = fsync
        self._tail_bytes = _TAIL_BYTES if tail_bytes is None else tail_bytes

    @property
    def path(self) -> Path:
        return self.logs_dir / LOG_FILENAME

    def write(self, event: CalcEvent) -> None:
        record = json.dumps(event.model_dump(mode="json"), sort_keys=True, default=str)
        data = (record + "\n").encode("utf-8")

        fd = os.open(str(self.path), os.O_WRONLY | os.O_CREAT | os.O_APPEND)
        try:
            with _flock(fd, fcntl.LOCK_EX if _HAS_FCNTL else 0):
                os.write(fd, data)
                if self._fsync:
                    os.fsync(fd)
        finally:
            os.close(fd)

    def read_global(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Return logged events newest first.

        Args:
            level: Keep only events at this level (``"error"``, ...).
            event_type: Keep only events of this type.
            limit: Maximum number returned, capped at 2000.
        """
        matches = [
            evt
            for evt in self._parsed_tail()
            if (level is None or evt.get("level") == level)
            and (event_type is None or evt.get("event_type") == event_type)
        ]
        matches.reverse()
        return matches[: min(limit, _READ_CAP)]

    def _parsed_tail(self) -> Iterator[dict[str, Any]]:
        # Lines that do not decode (a torn write, manual edits) are skipped.
        for raw in self._tail_text().splitlines():
            raw = raw.strip()
            if not raw:
                continue
            try:
                yield json.loads(raw)
            except json.JSONDecodeError:
                continue

    def _tail_text(self) -> str:
        if not self.path.exists():
            return ""
        with open(self.path, "rb") as fh:
            with _flock(fh.fileno(), fcntl.LOCK_SH if _HAS_FCNTL else 0):
                size = os.fstat(fh.fileno()).st_size
                start = max(0, size - self._tail_bytes)
                fh.seek(start)
                data = fh.read()
        if start:
            # The cut almost always lands mid-record.
            data = data[data.find(b"\n") + 1 :]
        return data.decode("utf-8", errors="replace")
