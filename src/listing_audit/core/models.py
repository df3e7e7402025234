# ABOUTME: Domain models for harvested listing records, ordering violations and the validation report
# ABOUTME: Also defines progress events, engine phases and the run-scoped collection state

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_AUTHOR = "Unknown"
NO_SCORE = "No Score"


class ListingSelectors(BaseModel):
    """CSS selectors describing where record fields live on a listing page."""

    model_config = ConfigDict(frozen=True)

    item: str = ".athing"
    title: str = ".titleline > a"
    score: str = ".score"
    age: str = ".age"
    author: str = ".hnuser"
    next_page: str = ".morelink"


class PageSnapshot(BaseModel):
    """Content of the currently loaded page, as handed to the extractor."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="URL of the page the snapshot was taken from")
    html: str = Field(description="Serialized DOM of the page")


class Record(BaseModel):
    """One harvested listing item."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, description="Trimmed item title")
    url: str | None = Field(default=None, description="Absolute link of the item, if any")
    author: str = Field(default=UNKNOWN_AUTHOR, description="Submitter name")
    score_text: str = Field(default=NO_SCORE, description="Score label as displayed")
    age_raw: str = Field(description="Timestamp label, precise attribute preferred over display text")
    sort_key: int = Field(default=0, description="Milliseconds since epoch parsed from age_raw, 0 when unparsable")


class SortViolation(BaseModel):
    """Adjacent pair where the earlier record is older than the one after it."""

    model_config = ConfigDict(frozen=True)

    position: int = Field(ge=1, description="1-based index of the earlier record")
    current: Record
    next: Record


class StopReason(str, Enum):
    """Why the collection loop ended without failing."""

    TARGET_REACHED = "target_reached"
    SOURCE_EXHAUSTED = "source_exhausted"
    DEADLINE_REACHED = "deadline_reached"


class ValidationReport(BaseModel):
    """Terminal artifact of a run: the collected records and every ordering violation."""

    model_config = ConfigDict(frozen=True)

    is_sorted: bool
    total_collected: int = Field(ge=0)
    violations: tuple[SortViolation, ...] = ()
    records: tuple[Record, ...] = ()
    pages_visited: int = Field(default=0, ge=0)
    stop_reason: StopReason = StopReason.TARGET_REACHED

    @property
    def violation_count(self) -> int:
        return len(self.violations)

    def head(self, n: int = 5) -> tuple[Record, ...]:
        return self.records[:n]

    def tail(self, n: int = 5) -> tuple[Record, ...]:
        if n <= 0:
            return ()
        return self.records[-n:]


class StatusEvent(BaseModel):
    kind: Literal["status"] = "status"
    message: str
    percent: float = Field(ge=0.0, le=100.0)


class BatchEvent(BaseModel):
    kind: Literal["batch"] = "batch"
    collected: int
    total: int
    new_records: list[Record] = Field(default_factory=list)


class ResultEvent(BaseModel):
    kind: Literal["result"] = "result"
    report: ValidationReport


class ErrorEvent(BaseModel):
    kind: Literal["error"] = "error"
    message: str


ProgressEvent = Annotated[StatusEvent | BatchEvent | ResultEvent | ErrorEvent, Field(discriminator="kind")]


class EnginePhase(str, Enum):
    """Phases of a collection run."""

    IDLE = "idle"
    LOADING = "loading"
    EXTRACTING = "extracting"
    PAGINATING = "paginating"
    AUDITING = "auditing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class CollectionState:
    """Mutable, run-scoped accumulation threaded through the collection loop."""

    target_count: int
    records: list[Record] = field(default_factory=list)
    page_index: int = 1
    phase: EnginePhase = EnginePhase.IDLE
    stop_reason: StopReason | None = None

    @property
    def remaining(self) -> int:
        return max(self.target_count - len(self.records), 0)

    @property
    def is_complete(self) -> bool:
        return len(self.records) >= self.target_count

    @property
    def percent(self) -> float:
        """Progress share of the collection phase, scaled into the 5-75% band."""
        return 5 + (len(self.records) / self.target_count) * 70
