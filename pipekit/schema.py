"""JSON Schema validation of pipeline documents.

Validation never raises: every problem is reported as a
:class:`ValidationIssue` with a dotted path into the document.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

import yaml
from jsonschema import Draft202012Validator
from pydantic import BaseModel, ConfigDict, ValidationError

from .document import (
    ActivityOptions,
    PipelineDocument,
    canonicalize,
    document_to_dict,
)

logger = logging.getLogger(__name__)

DURATION_SCHEMA = {"type": "string", "pattern": r"^\d+[smh]$"}

RETRY_POLICY_SCHEMA = {
    "type": "object",
    "properties": {
        "maximum_attempts": {"type": "integer", "minimum": 0},
        "initial_interval": DURATION_SCHEMA,
        "backoff_coefficient": {"type": "number", "exclusiveMinimum": 0},
        "maximum_interval": DURATION_SCHEMA,
    },
    "additionalProperties": False,
}

ACTIVITY_OPTIONS_SCHEMA = {
    "type": "object",
    "properties": {
        "schedule_to_close_timeout": DURATION_SCHEMA,
        "start_to_close_timeout": DURATION_SCHEMA,
        "retry_policy": RETRY_POLICY_SCHEMA,
    },
    "additionalProperties": False,
}

# Unicode letters and digits, as produced by canonify
STEP_ID_SCHEMA = {"type": "string", "pattern": r"^[^\W_][\w-]*$"}


def _path_string(minimum_length: int = 1) -> dict:
    return {"type": "string", "minLength": minimum_length}


def _step_schema(use: str, with_schema: Optional[dict]) -> dict:
    properties: Dict[str, Any] = {
        "use": {"const": use},
        "id": STEP_ID_SCHEMA,
        "continue_on_error": {"type": "boolean"},
        "activity_options": ACTIVITY_OPTIONS_SCHEMA,
        "metadata": {"type": "object"},
    }
    required = ["use", "id"]
    if with_schema is not None:
        properties["with"] = with_schema
        required.append("with")
    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


def _with(required: List[str], **properties: Any) -> dict:
    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


STEP_SCHEMAS: Dict[str, dict] = {
    "mobile-automation": _step_schema(
        "mobile-automation",
        _with(
            ["action_id", "version_id"],
            action_id=_path_string(),
            version_id=_path_string(),
            parameters={
                "type": "object",
                "properties": {"deeplink": {"type": "string"}},
                "additionalProperties": {"type": "string"},
            },
        ),
    ),
    "credential-offer": _step_schema(
        "credential-offer", _with(["credential_id"], credential_id=_path_string())
    ),
    "custom-check": _step_schema(
        "custom-check", _with(["check_id"], check_id=_path_string())
    ),
    "conformance-check": _step_schema(
        "conformance-check", _with(["check_id"], check_id=_path_string())
    ),
    "use-case-verification-deeplink": _step_schema(
        "use-case-verification-deeplink",
        _with(["use_case_id"], use_case_id=_path_string()),
    ),
    "email": _step_schema(
        "email",
        _with(
            ["payload"],
            payload=_with(
                ["recipient"],
                recipient={"type": "string", "pattern": r"^[^@\s]+@[^@\s]+\.[^@\s]+$"},
                subject={"type": "string"},
                body={"type": "string"},
                sender={"type": "string"},
            ),
        ),
    ),
    "http-request": _step_schema(
        "http-request",
        _with(
            ["payload"],
            payload=_with(
                ["method", "url"],
                method={
                    "enum": ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]
                },
                url={"type": "string", "pattern": r"^https?://"},
                headers={"type": "object", "additionalProperties": {"type": "string"}},
                body={"type": ["object", "array", "string"]},
            ),
        ),
    ),
    "debug": _step_schema("debug", None),
}

STEP_USES = tuple(STEP_SCHEMAS)

PIPELINE_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "runtime": {
            "type": "object",
            "properties": {
                "temporal": {
                    "type": "object",
                    "properties": {"activity_options": ACTIVITY_OPTIONS_SCHEMA},
                    "required": ["activity_options"],
                    "additionalProperties": False,
                },
                "global_runner_id": {"type": "string", "minLength": 1},
            },
            "required": ["temporal"],
            "additionalProperties": False,
        },
        "steps": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"use": {"enum": list(STEP_USES)}},
                "required": ["use"],
            },
        },
    },
    "required": ["name", "runtime", "steps"],
    "additionalProperties": False,
}

_pipeline_validator = Draft202012Validator(PIPELINE_SCHEMA)
_step_validators = {use: Draft202012Validator(schema) for use, schema in STEP_SCHEMAS.items()}
_activity_options_validator = Draft202012Validator(ACTIVITY_OPTIONS_SCHEMA)


class ValidationIssue(BaseModel):
    """One problem found in a document, located by a dotted ``path``."""

    path: str
    message: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.path or '<root>'}: {self.message}"


class ValidationResult(BaseModel):
    issues: List[ValidationIssue] = []
    value: Optional[Any] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def ok(self) -> bool:
        return not self.issues

    @property
    def document(self) -> Optional[PipelineDocument]:
        return self.value if isinstance(self.value, PipelineDocument) else None


def _join(*parts: Iterable[Any]) -> str:
    return ".".join(str(part) for chunk in parts for part in chunk)


def issues_from_pydantic(
    error: ValidationError, prefix: Iterable[Any] = ()
) -> List[ValidationIssue]:
    return [
        ValidationIssue(path=_join(prefix, item["loc"]), message=item["msg"])
        for item in error.errors()
    ]


def _schema_issues(
    validator: Draft202012Validator, data: Any, prefix: Iterable[Any] = ()
) -> List[ValidationIssue]:
    errors = sorted(validator.iter_errors(data), key=lambda err: list(err.absolute_path))
    return [
        ValidationIssue(path=_join(prefix, err.absolute_path), message=err.message)
        for err in errors
    ]


def validate_data(data: Any) -> List[ValidationIssue]:
    """Check plain data against the pipeline and per-step schemas."""
    issues = _schema_issues(_pipeline_validator, data)
    if not isinstance(data, dict) or not isinstance(data.get("steps"), list):
        return issues

    for index, step in enumerate(data["steps"]):
        if isinstance(step, dict) and step.get("use") in _step_validators:
            issues.extend(
                _schema_issues(_step_validators[step["use"]], step, ("steps", index))
            )

    ids = Counter(
        step.get("id") for step in data["steps"] if isinstance(step, dict) and step.get("id")
    )
    for index, step in enumerate(data["steps"]):
        if isinstance(step, dict) and ids.get(step.get("id"), 0) > 1:
            issues.append(
                ValidationIssue(
                    path=f"steps.{index}.id", message=f"Duplicate step id '{step['id']}'"
                )
            )
    return issues


def validate_document(document: PipelineDocument) -> ValidationResult:
    """Validate a compiled document."""
    issues = validate_data(document_to_dict(document))
    return ValidationResult(issues=issues, value=None if issues else document)


def validate_yaml(text: str) -> ValidationResult:
    """Validate YAML text and, on success, return the parsed document."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        logger.debug(f"YAML parse error: {exc}")
        return ValidationResult(issues=[ValidationIssue(path="", message=f"Invalid YAML: {exc}")])

    issues = validate_data(data)
    if issues:
        return ValidationResult(issues=issues)
    try:
        document = PipelineDocument.model_validate(canonicalize(data))
    except ValidationError as exc:
        return ValidationResult(issues=issues_from_pydantic(exc))
    return ValidationResult(value=document)


def validate_activity_options_yaml(text: str) -> ValidationResult:
    """Validate the raw-text view of the activity options."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        return ValidationResult(issues=[ValidationIssue(path="", message=f"Invalid YAML: {exc}")])

    issues = _schema_issues(_activity_options_validator, data or {})
    if issues:
        return ValidationResult(issues=issues)
    try:
        options = ActivityOptions.model_validate(data or {})
    except ValidationError as exc:
        return ValidationResult(issues=issues_from_pydantic(exc))
    return ValidationResult(value=options)
