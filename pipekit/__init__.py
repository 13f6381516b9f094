"""pipekit: compose, validate and enqueue conformance test pipelines."""

from .builder import StepsBuilder
from .catalog import get_catalog
from .compiler import compile_pipeline
from .document import ActivityOptions, PipelineDocument, PipelineMetadata
from .editor import ActivityOptionsForm, PipelineEditor
from .queue import CancellationBus, ExecutionQueue, PipelineRun, RunState
from .runner import get_runner
from .schedule import ScheduleManager
from .schema import validate_document, validate_yaml
from .steps import Step, StepKind
from .store import get_store

__version__ = "0.1.0"
__all__ = [
    "ActivityOptions",
    "ActivityOptionsForm",
    "CancellationBus",
    "ExecutionQueue",
    "PipelineDocument",
    "PipelineEditor",
    "PipelineMetadata",
    "PipelineRun",
    "RunState",
    "ScheduleManager",
    "Step",
    "StepKind",
    "StepsBuilder",
    "compile_pipeline",
    "get_catalog",
    "get_runner",
    "get_store",
    "validate_document",
    "validate_yaml",
]
