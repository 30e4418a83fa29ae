import enum
from datetime import timedelta
from typing import List

from pydantic import BaseModel, Field, model_validator


ERROR_TITLE = "Error"
MISSING_TITLE_ATTRIBUTE = "No title"

REPORT_HEADER = [
    "URL",
    "Title",
    "Status Code",
    "Load Time (ms)",
    "Self-Referencing URL with #",
    "Anchor Details",
]


class SessionState(str, enum.Enum):
    IDLE = "idle"
    RECEIVING_INPUT = "receiving_input"
    PROCESSING = "processing"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class ResultRecord(BaseModel):
    """Diagnostics for one audited URL; one row of the report."""

    url: str = Field(min_length=1)
    title: str = ""
    status_code: int = 0
    load_time: timedelta = timedelta(0)
    self_referencing: bool = False
    anchor_details: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _flag_matches_details(self) -> "ResultRecord":
        if self.self_referencing != bool(self.anchor_details):
            raise ValueError("self_referencing must be set exactly when anchor_details is non-empty")
        return self

    @classmethod
    def fetch_failed(cls, url: str) -> "ResultRecord":
        return cls(url=url, title=ERROR_TITLE, status_code=0, load_time=timedelta(0))

    @classmethod
    def parse_failed(cls, url: str, status_code: int, load_time: timedelta) -> "ResultRecord":
        return cls(url=url, title=ERROR_TITLE, status_code=status_code, load_time=load_time)

    @property
    def load_time_ms(self) -> int:
        return int(self.load_time / timedelta(milliseconds=1))
