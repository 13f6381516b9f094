"""Wire models of the job runner's queue API."""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class QueueStatusName(str, Enum):
    QUEUED = "queued"
    STARTING = "starting"
    RUNNING = "running"
    FAILED = "failed"
    CANCELED = "canceled"
    NOT_FOUND = "not_found"


ACCEPTED_STATUSES = frozenset(
    {QueueStatusName.QUEUED, QueueStatusName.STARTING, QueueStatusName.RUNNING}
)


class QueueTicket(BaseModel):
    """Admission token issued by the runner when no runner is free.

    ``position`` is 0-based; ``0`` means next to run.
    """

    ticket_id: str
    position: int = Field(ge=0)
    line_len: int = Field(ge=1)
    runner_ids: Tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _position_in_line(self) -> "QueueTicket":
        if self.position >= self.line_len:
            raise ValueError(
                f"position {self.position} must be smaller than line_len {self.line_len}"
            )
        return self


class QueueStatus(BaseModel):
    """Response of the enqueue, status and cancel endpoints."""

    status: QueueStatusName
    ticket_id: Optional[str] = None
    enqueued_at: Optional[str] = None
    runner_ids: List[str] = Field(default_factory=list)
    position: Optional[int] = None
    line_len: Optional[int] = None
    workflow_id: Optional[str] = None
    run_id: Optional[str] = None
    workflow_namespace: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def ticket(self) -> Optional[QueueTicket]:
        """The queue ticket, when the response describes a queued run."""
        if (
            self.status != QueueStatusName.QUEUED
            or not self.ticket_id
            or self.position is None
            or not self.line_len
        ):
            return None
        return QueueTicket(
            ticket_id=self.ticket_id,
            position=self.position,
            line_len=self.line_len,
            runner_ids=tuple(self.runner_ids),
        )


class Signal(BaseModel):
    workflow_id: str
    namespace: str
    signal: str
    payload: Optional[Any] = None

    model_config = ConfigDict(frozen=True)
