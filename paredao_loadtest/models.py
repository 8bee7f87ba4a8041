"""Data models for vote requests and check outcomes."""
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field

CHECK_NAME = "status is 202 or 200"
SUCCESS_STATUSES = (200, 202)


class VoteRequest(BaseModel):
    """JSON body sent to POST /votos."""

    paredao_id: str = Field(..., description="Voting round identifier")
    participante_id: str = Field(..., description="Participant receiving the vote")


@dataclass
class CheckResult:
    """
    Outcome of one vote invocation.

    Attributes:
        vu_id: Virtual user that issued the request
        participante_id: Participant the vote was cast for
        forwarded_for: X-Forwarded-For value sent with the request
        status_code: HTTP status, or None when no response arrived
        latency: Seconds spent waiting for the response
        passed: Whether the status check passed
        error: "HTTP <code>" or the exception class name on failure
    """
    vu_id: int
    participante_id: str
    forwarded_for: str
    status_code: Optional[int]
    latency: float
    passed: bool
    error: Optional[str] = None
