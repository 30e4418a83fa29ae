"""
Audit session orchestration.

One session = one WebSocket connection = one uploaded batch:

    IDLE -> RECEIVING_INPUT -> PROCESSING -> FINALIZING -> DONE
                   |                |             |
                   +-------------> FAILED <-------+

Events for URL i+1 are never sent before the events for URL i. With
FETCH_CONCURRENCY > 1 fetches run ahead in a bounded pool, but their results
are reported strictly in input order.
"""

import asyncio
import uuid
from pathlib import Path
from typing import Iterable, List, Optional

import httpx

from app.features.link_audit.schemas.link_audit import ResultRecord, SessionState
from app.features.link_audit.services.aggregator import ResultAggregator
from app.features.link_audit.services.exporter import ReportExporter
from app.features.link_audit.services.ingestor import BatchIngestor
from app.features.link_audit.services.page_auditor import PageAuditor, build_http_client
from app.features.link_audit.services.progress import ProgressReporter
from app.platform.config import settings
from app.platform.exceptions import (
    ChannelClosedError,
    ExportError,
    InputDecodeError,
    LinkAuditError,
)
from app.platform.logger import get_logger

logger = get_logger(__name__)


class AuditSession:
    """
    Drives one batch from raw upload bytes to a written report.

    Collaborators are injectable so tests can swap the HTTP transport,
    the report location and the ignore policy.
    """

    def __init__(
        self,
        reporter: ProgressReporter,
        session_id: Optional[str] = None,
        ingestor: Optional[BatchIngestor] = None,
        exporter: Optional[ReportExporter] = None,
        ignored_classes: Optional[Iterable[str]] = None,
        concurrency: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.reporter = reporter
        self.ingestor = ingestor or BatchIngestor()
        self.exporter = exporter or ReportExporter()
        self.ignored_classes = frozenset(
            settings.IGNORED_ANCHOR_CLASSES if ignored_classes is None else ignored_classes
        )
        self.concurrency = concurrency or settings.FETCH_CONCURRENCY
        self.transport = transport

        self.state = SessionState.IDLE
        self.urls: List[str] = []
        self.records: List[ResultRecord] = []
        self.report_path: Optional[Path] = None
        self.error: Optional[LinkAuditError] = None

    @property
    def download_url(self) -> str:
        return f"{settings.DOWNLOAD_PREFIX}/{self.exporter.report_name(self.session_id)}"

    def _transition(self, state: SessionState):
        logger.info(f"Session {self.session_id}: {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, error: LinkAuditError):
        self.error = error
        self._transition(SessionState.FAILED)

    async def run(self, raw_batch: bytes) -> SessionState:
        """
        Run the whole pipeline; returns the terminal state (DONE or FAILED).

        Only ingestion, export and channel errors end a session early.
        """
        self._transition(SessionState.RECEIVING_INPUT)
        try:
            self.urls = self.ingestor.ingest(raw_batch)
        except InputDecodeError as e:
            logger.error(f"Session {self.session_id}: error reading CSV file: {e}")
            self._fail(e)
            await self._notify(self.reporter.input_error(str(e)))
            return self.state

        try:
            self._transition(SessionState.PROCESSING)
            aggregator = await self._process(self.urls)

            self._transition(SessionState.FINALIZING)
            self.records = aggregator.records()
            try:
                self.report_path = await self.exporter.export(self.session_id, self.records)
            except ExportError as e:
                self._fail(e)
                await self._notify(self.reporter.export_error(str(e)))
                return self.state

            await self.reporter.completed(self.download_url)
        except ChannelClosedError as e:
            logger.warning(f"Session {self.session_id}: aborting, {e}")
            self._fail(e)
            return self.state

        self._transition(SessionState.DONE)
        logger.info(f"Session {self.session_id}: audited {len(self.records)} URLs")
        return self.state

    async def _notify(self, send):
        try:
            await send
        except ChannelClosedError as e:
            logger.warning(f"Session {self.session_id}: could not deliver error event, {e}")

    async def _process(self, urls: List[str]) -> ResultAggregator:
        aggregator = ResultAggregator(len(urls))
        total = len(urls)

        async with build_http_client(transport=self.transport) as client:
            auditor = PageAuditor(client, self.ignored_classes)
            pending: List[asyncio.Task] = []
            if self.concurrency > 1:
                pending = self._schedule(auditor, urls)

            try:
                for index, url in enumerate(urls):
                    await self.reporter.processing(url)
                    logger.info(f"Session {self.session_id}: processing URL {index + 1}/{total}: {url}")

                    if pending:
                        record = await pending[index]
                    else:
                        record = await auditor.audit(url)

                    aggregator.add(index, record)
                    await self.reporter.progress(index, total)
            finally:
                for task in pending:
                    task.cancel()
                if pending:
                    await asyncio.gather(*pending, return_exceptions=True)

        return aggregator

    def _schedule(self, auditor: PageAuditor, urls: List[str]) -> List[asyncio.Task]:
        """Start every fetch up front; the semaphore bounds how many run at once."""
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(url: str) -> ResultRecord:
            async with semaphore:
                return await auditor.audit(url)

        return [asyncio.create_task(bounded(url)) for url in urls]
