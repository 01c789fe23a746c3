from datetime import datetime

from pydantic import BaseModel


class ValidationOutcome(BaseModel):
    station_id: str
    is_valid: bool
    checked_at: datetime


class BatchSummary(BaseModel):
    """Tallies for one batch, taken after all of its validations returned."""

    index: int
    size: int
    valid: int
    invalid: int
    persist_failures: int = 0


class RunSummary(BaseModel):
    """Aggregated result of a full fleet run."""

    valid: int = 0
    invalid: int = 0
    processed: int = 0
    batches: int = 0
    persist_failures: int = 0
    cancelled: bool = False
    started_at: datetime
    finished_at: datetime | None = None
