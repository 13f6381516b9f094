"""Pipeline document model and its canonical YAML text form."""

from __future__ import annotations

import re
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import DEFAULT_MAXIMUM_ATTEMPTS, DEFAULT_TIMEOUT

DURATION_PATTERN = re.compile(r"^(\d+)([smh])$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600}

# Keys listed here come first, in this order; everything else is alphabetical.
_KEY_ORDER = (
    "name",
    "runtime",
    "temporal",
    "global_runner_id",
    "activity_options",
    "schedule_to_close_timeout",
    "start_to_close_timeout",
    "retry_policy",
    "steps",
    "id",
    "use",
    "continue_on_error",
    "with",
    "metadata",
)
_KEY_RANK = {key: rank for rank, key in enumerate(_KEY_ORDER)}


def normalize_duration(value: str) -> str:
    """Return ``value`` expressed in the largest exact unit.

    ``"1200s"`` becomes ``"20m"``, ``"90m"`` stays ``"90m"``, ``"120m"``
    becomes ``"2h"``.

    Raises:
        ValueError: If ``value`` does not match ``<digits><s|m|h>``.
    """
    match = DURATION_PATTERN.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid duration '{value}': expected a value like '20m'")
    seconds = int(match.group(1)) * _UNIT_SECONDS[match.group(2)]
    for unit, size in (("h", 3600), ("m", 60)):
        if seconds and seconds % size == 0:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"


def duration_seconds(value: str) -> int:
    """Return the number of seconds in a duration string."""
    normalized = normalize_duration(value)
    return int(normalized[:-1]) * _UNIT_SECONDS[normalized[-1]]


class RetryPolicy(BaseModel):
    maximum_attempts: Optional[int] = Field(default=None, ge=0)
    initial_interval: Optional[str] = None
    backoff_coefficient: Optional[float] = None
    maximum_interval: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("initial_interval", "maximum_interval")
    @classmethod
    def _normalize(cls, value: Optional[str]) -> Optional[str]:
        return normalize_duration(value) if value is not None else None


class ActivityOptions(BaseModel):
    """Timeouts and retry policy applied to every activity of a run."""

    schedule_to_close_timeout: str = DEFAULT_TIMEOUT
    start_to_close_timeout: str = DEFAULT_TIMEOUT
    retry_policy: RetryPolicy = Field(
        default_factory=lambda: RetryPolicy(maximum_attempts=DEFAULT_MAXIMUM_ATTEMPTS)
    )

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("schedule_to_close_timeout", "start_to_close_timeout")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_duration(value)


class TemporalRuntime(BaseModel):
    activity_options: ActivityOptions = Field(default_factory=ActivityOptions)

    model_config = ConfigDict(frozen=True, extra="forbid")


class Runtime(BaseModel):
    temporal: TemporalRuntime = Field(default_factory=TemporalRuntime)
    global_runner_id: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class PipelineDocument(BaseModel):
    """Workflow description sent to the job runner.

    Steps are kept as plain mappings in the runner's wire format; their shape
    is checked by :mod:`pipekit.schema`, not here.
    """

    name: str
    runtime: Runtime = Field(default_factory=Runtime)
    steps: Tuple[Dict[str, Any], ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def activity_options(self) -> ActivityOptions:
        return self.runtime.temporal.activity_options

    def with_global_runner(self, runner_id: str) -> "PipelineDocument":
        """Return a copy that pins every step to ``runner_id``."""
        runtime = self.runtime.model_copy(update={"global_runner_id": runner_id})
        return self.model_copy(update={"runtime": runtime})


def _key_rank(key: str) -> tuple[int, str]:
    return (_KEY_RANK.get(key, len(_KEY_ORDER)), key)


def canonicalize(value: Any) -> Any:
    """Recursively order mapping keys into canonical order."""
    if isinstance(value, dict):
        return {key: canonicalize(value[key]) for key in sorted(value, key=_key_rank)}
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    return value


def document_to_dict(document: PipelineDocument) -> dict[str, Any]:
    return canonicalize(document.model_dump(mode="json", exclude_none=True))


def stringify_document(document: PipelineDocument) -> str:
    """Serialize ``document`` to canonical YAML.

    Semantically equal documents always produce byte-identical text.
    """
    return yaml.safe_dump(
        document_to_dict(document),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def parse_document(text: str) -> PipelineDocument:
    """Parse YAML text into a :class:`PipelineDocument`.

    Raises:
        yaml.YAMLError: If ``text`` is not valid YAML.
        pydantic.ValidationError: If the structure does not match the model.
        ValueError: If the top level is not a mapping.
    """
    data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError("Pipeline document must be a YAML mapping")
    return PipelineDocument.model_validate(data)


def format_yaml(text: str) -> str:
    """Insert blank lines between top-level sections and between steps."""
    lines = text.splitlines()
    formatted: list[str] = []
    seen_key = False
    seen_item = False
    for line in lines:
        is_top_level_key = bool(line) and not line[0].isspace() and not line.startswith("- ")
        is_top_level_item = line.startswith("- ")
        if is_top_level_key:
            if seen_key:
                formatted.append("")
            seen_key = True
            seen_item = False
        elif is_top_level_item:
            if seen_item:
                formatted.append("")
            seen_item = True
        formatted.append(line)
    return "\n".join(formatted) + ("\n" if text.endswith("\n") else "")


class PipelineMetadata(BaseModel):
    """User-facing pipeline properties kept next to the document."""

    name: str = ""
    description: str = ""
    published: bool = False

    model_config = ConfigDict(frozen=True)
