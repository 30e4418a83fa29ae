"""
CSV report writer.

A report is written to a temporary file beside its final path and moved into
place only once complete, so a failed export never leaves a partial or
truncated report behind. Writes to the same path are serialized, and file
work runs in a worker thread. Reports older than REPORT_RETENTION_HOURS are
removed after each export.
"""

import asyncio
import csv
import io
import os
import tempfile
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from app.features.link_audit.schemas.link_audit import REPORT_HEADER, ResultRecord
from app.platform.config import REPORT_NAME_PATTERN, check_report_template, settings
from app.platform.exceptions import ExportError
from app.platform.logger import get_logger

logger = get_logger(__name__)


class _PathLock:
    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


# Report paths currently being written, shared by every session in this process.
# An entry lives only while some export holds or waits for it.
_path_locks: Dict[Path, _PathLock] = {}


@asynccontextmanager
async def _locked(path: Path):
    entry = _path_locks.get(path)
    if entry is None:
        entry = _path_locks[path] = _PathLock()
    entry.users += 1
    try:
        async with entry.lock:
            yield
    finally:
        entry.users -= 1
        if entry.users == 0:
            del _path_locks[path]


def join_anchor_details(details: List[str]) -> str:
    """
    Comma-join anchor descriptors into one field.

    Descriptors containing a comma or a single quote are wrapped in single
    quotes (quotes doubled), so the list can be split back unambiguously.
    Without such characters the result is a plain comma join.
    """
    if not details:
        return ""
    buffer = io.StringIO()
    csv.writer(buffer, quotechar="'", lineterminator="\r\n").writerow(details)
    return buffer.getvalue()[:-2]


def split_anchor_details(field: str) -> List[str]:
    if not field:
        return []
    return next(csv.reader([field], quotechar="'"))


def format_row(record: ResultRecord) -> List[str]:
    return [
        record.url,
        record.title,
        str(record.status_code),
        str(record.load_time_ms),
        "true" if record.self_referencing else "false",
        join_anchor_details(record.anchor_details),
    ]


class ReportExporter:
    """
    Serializes aggregated records into the CSV report artifact.

    Args:
        reports_dir: directory the reports are written to
        filename_template: report file name, formatted with `session_id`
        retention_hours: age after which reports are pruned; 0 keeps them all

    Raises:
        ValueError: if `filename_template` does not give a servable .csv name
    """

    def __init__(
        self,
        reports_dir: Optional[Path] = None,
        filename_template: Optional[str] = None,
        retention_hours: Optional[float] = None,
    ):
        self.reports_dir = Path(reports_dir or settings.REPORTS_DIR)
        self.filename_template = check_report_template(filename_template or settings.REPORT_FILENAME_TEMPLATE)
        self.retention_hours = settings.REPORT_RETENTION_HOURS if retention_hours is None else retention_hours

    def report_name(self, session_id: str) -> str:
        return self.filename_template.format(session_id=session_id)

    def report_path(self, session_id: str) -> Path:
        return self.reports_dir / self.report_name(session_id)

    def resolve(self, report_name: str) -> Optional[Path]:
        """Map a requested download name to an existing report file, or None."""
        if not REPORT_NAME_PATTERN.match(report_name):
            return None
        path = self.reports_dir / report_name
        return path if path.is_file() else None

    async def export(self, session_id: str, records: Iterable[ResultRecord]) -> Path:
        """
        Write the report for a session and return its path.

        Raises:
            ExportError: if the report directory or file cannot be written
        """
        path = self.report_path(session_id)
        rows = [format_row(record) for record in records]

        async with _locked(path.resolve()):
            try:
                await asyncio.to_thread(self._write_atomically, path, rows)
            except OSError as e:
                logger.error(f"Session {session_id}: could not write report {path}: {e}")
                raise ExportError(f"could not write {path.name}: {e.strerror or e}") from e

        logger.info(f"Session {session_id}: wrote {len(rows)} rows to {path}")
        try:
            await asyncio.to_thread(self.prune_expired_reports, keep=path)
        except OSError as e:
            logger.warning(f"Could not prune old reports in {self.reports_dir}: {e}")
        return path

    def prune_expired_reports(self, keep: Optional[Path] = None) -> List[Path]:
        """
        Delete reports last modified more than `retention_hours` ago.

        Only names a download could ask for are considered. A report that
        cannot be removed is logged and left for the next pass.

        Returns:
            the paths that were removed
        """
        if self.retention_hours <= 0 or not self.reports_dir.is_dir():
            return []

        cutoff = time.time() - self.retention_hours * 3600
        removed: List[Path] = []
        for path in self.reports_dir.iterdir():
            if path == keep or not REPORT_NAME_PATTERN.match(path.name):
                continue
            try:
                if path.is_file() and path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed.append(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Could not remove expired report {path}: {e}")

        if removed:
            logger.info(f"Removed {len(removed)} expired reports from {self.reports_dir}")
        return removed

    def _write_atomically(self, path: Path, rows: List[List[str]]):
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                writer = csv.writer(handle)
                writer.writerow(REPORT_HEADER)
                writer.writerows(rows)
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
