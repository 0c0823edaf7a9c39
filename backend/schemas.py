# backend/schemas.py
from typing import List, Optional, Any, Literal, Union
from pydantic import BaseModel, Field, field_validator, ConfigDict
import re
from datetime import datetime, timezone

Outcome = Literal["accepted", "declined", "no_agreement"]
Sentiment = Literal["positive", "neutral", "negative"]

_NUMERIC = re.compile(r"[+-]?\d+(\.\d*)?")


class LogRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: Union[int, str]
    mc_number: str
    load_id: str
    # strict: no bool or numeric-string coercion; JSON ints still pass
    final_rate: float = Field(strict=True, allow_inf_nan=False)
    outcome: Outcome
    sentiment: Sentiment
    rounds: int = Field(strict=True)
    notes: str = ""
    created_at: datetime

    @field_validator("notes", mode="before")
    @classmethod
    def notes_none_is_empty(cls, v):
        return "" if v is None else v

    @field_validator("created_at", mode="before")
    @classmethod
    def created_at_must_be_iso_string(cls, v):
        # epoch numbers would otherwise be read as seconds since 1970
        if isinstance(v, datetime):
            return v
        if not isinstance(v, str):
            raise ValueError("created_at must be an ISO 8601 string")
        if _NUMERIC.fullmatch(v.strip()):
            raise ValueError("created_at must be an ISO 8601 string, not an epoch number")
        return v

    @field_validator("created_at")
    @classmethod
    def created_at_as_utc(cls, v: datetime) -> datetime:
        # timestamps without an offset are taken as UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def created_date(self) -> str:
        return self.created_at.strftime("%Y-%m-%d")


class SummaryStats(BaseModel):
    accepted_count: int = 0
    declined_count: int = 0
    avg_final_rate: float = 0.0
    avg_rounds: float = 0.0


class DistributionEntry(BaseModel):
    label: str
    count: int
    color_key: Optional[str] = None
    color: Optional[str] = None
    share: int = 0  # whole-number percentage of the dataset


class TrendPoint(BaseModel):
    date: str
    avg_rate: float

    @field_validator("date")
    @classmethod
    def date_must_be_iso(cls, v):
        # basic format check YYYY-MM-DD
        try:
            datetime.strptime(v, "%Y-%m-%d")
        except Exception as e:
            raise ValueError("date must be YYYY-MM-DD") from e
        return v


class DashboardCharts(BaseModel):
    outcome: List[DistributionEntry] = Field(default_factory=list)
    sentiment: List[DistributionEntry] = Field(default_factory=list)
    trend: List[TrendPoint] = Field(default_factory=list)


class Dashboard(BaseModel):
    logs: List[LogRecord]
    stats: SummaryStats
    charts: DashboardCharts


class RecordIssue(BaseModel):
    index: int
    id: Optional[Any] = None
    field: Optional[str] = None
    message: str
