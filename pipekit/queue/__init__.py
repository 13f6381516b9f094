"""Execution queue coordination."""

from .bus import CancellationBus
from .coordinator import (
    CancelOutcome,
    ExecutionQueue,
    PipelineRun,
    RunState,
    format_position,
)
from .logs import LogStatus, WorkflowLog, WorkflowLogStream, default_log_transformer

__all__ = [
    "CancelOutcome",
    "CancellationBus",
    "ExecutionQueue",
    "LogStatus",
    "PipelineRun",
    "RunState",
    "WorkflowLog",
    "WorkflowLogStream",
    "default_log_transformer",
    "format_position",
]
