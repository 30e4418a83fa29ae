"""
Fetch-and-analyze step for a single URL.

PageAuditor.audit() never raises: transport failures become a record with
status 0, unreadable bodies keep the real status, and both use the "Error"
title placeholder.
"""

import time
from datetime import timedelta
from typing import Iterable, List, Optional, Tuple

import httpx
from bs4 import BeautifulSoup

from app.features.link_audit.schemas.link_audit import MISSING_TITLE_ATTRIBUTE, ResultRecord
from app.platform.config import settings
from app.platform.exceptions import FetchError, ParseError
from app.platform.logger import get_logger

logger = get_logger(__name__)

MIN_LOAD_TIME = timedelta(microseconds=1)

DEFAULT_HTTP_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def build_http_client(
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the HTTP client shared by every fetch of one session."""
    return httpx.AsyncClient(
        timeout=settings.FETCH_TIMEOUT_SECONDS if timeout is None else timeout,
        follow_redirects=settings.FOLLOW_REDIRECTS,
        headers={**DEFAULT_HTTP_HEADERS, "User-Agent": settings.USER_AGENT},
        transport=transport,
    )


def describe_anchor(href: str, css_class: str, title: str) -> str:
    return f'<a href="{href}" class="{css_class}" title="{title}">'


def find_self_referencing_anchors(soup: BeautifulSoup, ignored_classes: Iterable[str]) -> List[str]:
    """
    Return one descriptor per anchor whose href is exactly "#" and whose
    class attribute is not one of the ignored values.

    The class attribute is compared as a whole string, so the soup must be
    built with multi_valued_attributes=None.
    """
    ignored = frozenset(ignored_classes)
    details: List[str] = []

    for anchor in soup.find_all("a"):
        href = anchor.get("href", "")
        css_class = anchor.get("class", "")

        if href != "#" or css_class in ignored:
            continue

        title = anchor.get("title", MISSING_TITLE_ATTRIBUTE)
        details.append(describe_anchor(href, css_class, title))
        logger.info(f"Self-referencing link found (not ignored class): href={href} class={css_class} title={title}")

    return details


def extract_title(soup: BeautifulSoup) -> str:
    title = soup.find("title")
    return title.get_text() if title is not None else ""


class PageAuditor:
    """
    Fetches a page and derives the diagnostic fields of its ResultRecord.

    Args:
        client: HTTP client to fetch with (owned by the caller)
        ignored_classes: exact class attribute values to leave unreported
    """

    def __init__(self, client: httpx.AsyncClient, ignored_classes: Iterable[str]):
        self.client = client
        self.ignored_classes = frozenset(ignored_classes)

    async def audit(self, url: str) -> ResultRecord:
        try:
            status_code, load_time, body, encoding = await self._fetch(url)
            soup = self._parse(body, encoding, status_code, load_time)
        except FetchError as e:
            logger.warning(f"Error fetching URL: {url}, error: {e}")
            return ResultRecord.fetch_failed(url)
        except ParseError as e:
            logger.warning(f"Error parsing HTML for URL: {url}, error: {e}")
            return ResultRecord.parse_failed(url, e.status_code, e.load_time)

        anchor_details = find_self_referencing_anchors(soup, self.ignored_classes)
        return ResultRecord(
            url=url,
            title=extract_title(soup),
            status_code=status_code,
            load_time=load_time,
            self_referencing=bool(anchor_details),
            anchor_details=anchor_details,
        )

    async def _fetch(self, url: str) -> Tuple[int, timedelta, bytes, Optional[str]]:
        """
        GET the page; the load time stops when the response headers arrive.

        Raises:
            FetchError: no response was obtained
            ParseError: a response arrived but its body could not be read
        """
        start = time.perf_counter()
        try:
            async with self.client.stream("GET", url) as response:
                # Clamp so a response never reports the "no response" load time of zero.
                load_time = max(timedelta(seconds=time.perf_counter() - start), MIN_LOAD_TIME)
                try:
                    body = await response.aread()
                except httpx.HTTPError as e:
                    raise ParseError(
                        f"could not read response body: {e}", response.status_code, load_time
                    ) from e
                return response.status_code, load_time, body, response.charset_encoding
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise FetchError(str(e) or type(e).__name__) from e

    @staticmethod
    def _parse(body: bytes, encoding: Optional[str], status_code: int, load_time: timedelta) -> BeautifulSoup:
        try:
            return BeautifulSoup(
                body,
                "html.parser",
                from_encoding=encoding,
                multi_valued_attributes=None,
            )
        except Exception as e:
            raise ParseError(f"{type(e).__name__}: {e}", status_code, load_time) from e
