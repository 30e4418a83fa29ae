import re
from pathlib import Path
from typing import List, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings


# Report file names the download route is willing to serve.
REPORT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*\.csv$")


def check_report_template(template: str) -> str:
    """
    Ensure a report file name template formats to a servable name.

    Raises:
        ValueError: if `{session_id}` is missing, another placeholder is
            used, or the name would not match REPORT_NAME_PATTERN
    """
    if "{session_id}" not in template:
        raise ValueError("report file name template must contain {session_id}")
    try:
        sample = template.format(session_id="0123456789abcdef")
    except (KeyError, IndexError, ValueError) as e:
        raise ValueError(f"report file name template has an unknown placeholder: {e}") from e
    if not REPORT_NAME_PATTERN.match(sample):
        raise ValueError(f"report file name template must give a plain .csv name, got {sample!r}")
    return template


DEFAULT_IGNORED_ANCHOR_CLASSES = [
    "footer__copy-logo",
    "header__upper-link",
    "mp-share__toggle",
    "mp-share__toggle  breadcrumbs__tag",
    "mp-link mp-link--dark localisation-toggle localisation-setter",
    "hash-scroll",
    "mp-available-session__show-detail",
    "mp-available-session__hide-detail",
]


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "Link Audit"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True
    PORT: int = 8080

    # ── Logging ─────────────────────────────────
    LOG_DIR: Path = Path("logs")
    LOG_FILE: str = "link_audit.log"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_MAX_BYTES: int = 10_000_000
    LOG_BACKUP_COUNT: int = 5

    # ── Reports ─────────────────────────────────
    REPORTS_DIR: Path = Path("reports")
    REPORT_FILENAME_TEMPLATE: str = "report-{session_id}.csv"
    REPORT_RETENTION_HOURS: float = 24.0
    DOWNLOAD_PREFIX: str = "/download"

    # ── Fetching ────────────────────────────────
    FETCH_TIMEOUT_SECONDS: float = 15.0
    FETCH_CONCURRENCY: int = 1
    FOLLOW_REDIRECTS: bool = True
    USER_AGENT: str = "LinkAudit/1.0 (+https://github.com/link-audit)"

    # ── Upload limits ───────────────────────────
    MAX_UPLOAD_BYTES: int = 1024 * 1024
    MAX_BATCH_URLS: int = 1000

    # Exact class attribute values whose href="#" anchors are not reported
    IGNORED_ANCHOR_CLASSES: List[str] = DEFAULT_IGNORED_ANCHOR_CLASSES

    @field_validator("FETCH_CONCURRENCY")
    @classmethod
    def _at_least_one_worker(cls, value: int) -> int:
        if value < 1:
            raise ValueError("FETCH_CONCURRENCY must be at least 1")
        return value

    @field_validator("REPORT_FILENAME_TEMPLATE")
    @classmethod
    def _template_gives_report_name(cls, value: str) -> str:
        return check_report_template(value)

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
