import csv
import io
import tempfile
from typing import List, Optional

from app.platform.config import settings
from app.platform.exceptions import InputDecodeError
from app.platform.logger import get_logger
from app.platform.utils.url_validator import normalize_url, validate_url

logger = get_logger(__name__)


class BatchIngestor:
    """
    Turns the raw bytes of one uploaded CSV batch into an ordered URL list.

    The first column of every record is the URL; any further columns are
    ignored. Blank records and records whose URL normalizes to "" are skipped.
    """

    def __init__(self, max_bytes: Optional[int] = None, max_urls: Optional[int] = None):
        self.max_bytes = settings.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
        self.max_urls = settings.MAX_BATCH_URLS if max_urls is None else max_urls

    def ingest(self, raw_batch: bytes) -> List[str]:
        """
        Decode a batch into normalized URLs, preserving input order.

        Raises:
            InputDecodeError: if the batch is too large, is not UTF-8 or is
                not well-formed CSV (e.g. an unterminated quoted field)
        """
        if len(raw_batch) > self.max_bytes:
            raise InputDecodeError(
                f"upload is {len(raw_batch)} bytes, the limit is {self.max_bytes} bytes"
            )

        # The temporary file is released on every exit path, including decode errors.
        with tempfile.TemporaryFile(prefix="upload-", suffix=".csv") as spool:
            spool.write(raw_batch)
            spool.seek(0)
            # A leading BOM must not reach the CSV reader, or a quoted first field keeps its quotes.
            text = io.TextIOWrapper(spool, encoding="utf-8-sig", newline="")
            try:
                urls = self._read_urls(csv.reader(text, strict=True))
            except csv.Error as e:
                raise InputDecodeError(f"malformed CSV: {e}") from e
            except UnicodeDecodeError as e:
                raise InputDecodeError(f"batch is not valid UTF-8: {e.reason}") from e
            finally:
                text.detach()

        logger.info(f"Ingested {len(urls)} URLs from a {len(raw_batch)} byte batch")
        return urls

    def _read_urls(self, reader) -> List[str]:
        urls: List[str] = []
        for record in reader:
            if not record:
                continue

            url = normalize_url(record[0])
            if not url:
                logger.info(f"Empty URL found on line {reader.line_num}, skipping.")
                continue

            valid, problem = validate_url(url)
            if not valid:
                # Still audited; the fetch will record it as unreachable.
                logger.warning(f"Suspicious URL on line {reader.line_num}: {url} ({problem})")

            urls.append(url)
            if len(urls) > self.max_urls:
                raise InputDecodeError(f"batch has more than {self.max_urls} URLs")

        return urls
