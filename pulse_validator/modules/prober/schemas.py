from pydantic import BaseModel


class ProbeResult(BaseModel):
    """Outcome of a single reachability probe."""

    uri: str
    reachable: bool
    status_code: int | None = None
    elapsed_ms: int | None = None
    detail: str
