"""A pipeline editing session: metadata, activity options and steps."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, List, Optional, Tuple

import yaml

from .builder import StepsBuilder
from .canonify import canonify_plain
from .catalog.base import BaseCatalog
from .compiler import compile_pipeline
from .config import SearchConfig
from .constants import PIPELINES_COLLECTION
from .document import (
    ActivityOptions,
    PipelineDocument,
    PipelineMetadata,
    format_yaml,
    stringify_document,
)
from .schema import (
    ValidationIssue,
    ValidationResult,
    validate_activity_options_yaml,
    validate_document,
    validate_yaml,
)
from .steps import BaseStep
from .store.base import BaseRecordStore, Record

if TYPE_CHECKING:
    from .queue.coordinator import ExecutionQueue, PipelineRun

logger = logging.getLogger(__name__)


class ActivityOptionsForm:
    """Raw-YAML view of the activity options."""

    def __init__(self, initial: Optional[ActivityOptions] = None) -> None:
        self.value = initial or ActivityOptions()

    @property
    def code(self) -> str:
        return yaml.safe_dump(
            self.value.model_dump(mode="json", exclude_none=True), sort_keys=False
        )

    def apply_yaml(self, text: str) -> List[ValidationIssue]:
        """Replace the options with ``text`` if it validates."""
        result = validate_activity_options_yaml(text)
        if result.ok:
            self.value = result.value
        return result.issues


class PipelineEditor:
    """Derives the pipeline document from the session state on demand.

    The document is recompiled lazily, only when the steps, the activity
    options or the pipeline name changed since the last read.
    """

    def __init__(
        self,
        catalog: BaseCatalog,
        metadata: Optional[PipelineMetadata] = None,
        activity_options: Optional[ActivityOptions] = None,
        steps: Iterable[BaseStep] = (),
        search: Optional[SearchConfig] = None,
        record_id: Optional[str] = None,
        saved_yaml: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> None:
        self.metadata = metadata or PipelineMetadata()
        self.activity_options_form = ActivityOptionsForm(activity_options)
        self.builder = StepsBuilder(catalog, steps, search=search, preview=lambda: self.yaml)
        self.record_id = record_id
        self.owner = owner
        self._saved_yaml = saved_yaml
        self._cache: Optional[Tuple[Any, PipelineDocument]] = None
        self.issues: List[ValidationIssue] = []

    def set_metadata(self, **changes: Any) -> None:
        self.metadata = self.metadata.model_copy(update=changes)

    def _cache_key(self) -> Any:
        return (self.builder.revision, self.activity_options_form.value, self.metadata.name)

    @property
    def document(self) -> PipelineDocument:
        key = self._cache_key()
        if self._cache is None or self._cache[0] != key:
            document = compile_pipeline(
                self.metadata, self.activity_options_form.value, self.builder.steps
            )
            self._cache = (key, document)
        return self._cache[1]

    @property
    def yaml(self) -> str:
        return format_yaml(stringify_document(self.document))

    def validate(self) -> ValidationResult:
        return validate_document(self.document)

    def check_yaml(self, text: str) -> ValidationResult:
        """Validate hand-edited YAML of the whole document."""
        return validate_yaml(text)

    @property
    def has_changes(self) -> bool:
        if self.record_id is None:
            return bool(self.builder.steps)
        return self._saved_yaml != self.yaml

    async def submit(
        self,
        queue: "ExecutionQueue",
        pipeline_identifier: str,
        global_runner_id: Optional[str] = None,
    ) -> Optional["PipelineRun"]:
        """Validate and enqueue the document.

        Returns ``None`` and fills :attr:`issues` when validation fails.
        """
        result = self.validate()
        self.issues = result.issues
        if not result.ok:
            logger.warning(
                f"Not submitting {pipeline_identifier}: {len(result.issues)} validation issues"
            )
            return None
        return await queue.submit(
            pipeline_identifier, self.document, global_runner_id=global_runner_id
        )

    async def save(self, store: BaseRecordStore) -> Record:
        """Create or update the pipeline record."""
        text = self.yaml
        data = {
            "name": self.metadata.name,
            "description": self.metadata.description,
            "published": self.metadata.published,
            "canonified_name": canonify_plain(self.metadata.name),
            "yaml": text,
        }
        if self.owner:
            data["owner"] = self.owner
        if self.record_id is None:
            record = await store.create(PIPELINES_COLLECTION, data)
            self.record_id = record["id"]
            logger.info(f"Created pipeline {self.record_id}")
        else:
            record = await store.update(PIPELINES_COLLECTION, self.record_id, data)
            logger.info(f"Updated pipeline {self.record_id}")
        self._saved_yaml = text
        return record
