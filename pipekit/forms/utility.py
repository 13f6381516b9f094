"""Free-form utility steps: email, HTTP request and debug."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from ..schema import ValidationIssue, issues_from_pydantic
from ..steps import (
    BaseStep,
    DebugStep,
    EmailPayload,
    EmailStep,
    HttpRequestPayload,
    HttpRequestStep,
    StepKind,
)
from .base import BaseStepForm, SubmitHandler


class UtilityStepForm(BaseStepForm):
    """``edit -> ready``; :meth:`submit` validates the collected values."""

    payload_type: Optional[Type[BaseModel]] = None
    step_type: Type[BaseStep]

    def __init__(self, on_submit: Optional[SubmitHandler] = None) -> None:
        super().__init__(on_submit)
        self.values: Dict[str, Any] = {}

    def update(self, **values: Any) -> None:
        self._ensure_active()
        self.values.update(values)

    def _prepare(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return values

    def submit(self, **values: Any) -> List[ValidationIssue]:
        """Complete the form, or return the issues blocking completion."""
        self.update(**values)
        if self.payload_type is None:
            self._complete(self.step_type())
            return []
        try:
            payload = self.payload_type.model_validate(self._prepare(dict(self.values)))
        except ValidationError as exc:
            self.last_error = exc
            return issues_from_pydantic(exc)
        self.last_error = None
        self._complete(self.step_type(payload=payload))
        return []


class EmailStepForm(UtilityStepForm):
    kind = StepKind.EMAIL
    payload_type = EmailPayload
    step_type = EmailStep

    def _prepare(self, values: Dict[str, Any]) -> Dict[str, Any]:
        # empty optional fields are left out of the payload
        return {key: value for key, value in values.items() if value not in ("", None)}


class HttpRequestStepForm(UtilityStepForm):
    kind = StepKind.HTTP_REQUEST
    payload_type = HttpRequestPayload
    step_type = HttpRequestStep

    def _prepare(self, values: Dict[str, Any]) -> Dict[str, Any]:
        body = values.get("body")
        if isinstance(body, str):
            if not body.strip():
                values.pop("body")
            else:
                try:
                    parsed = json.loads(body)
                except ValueError:
                    parsed = body
                values["body"] = parsed if isinstance(parsed, (dict, list)) else body
        if not values.get("headers"):
            values.pop("headers", None)
        return values


class DebugStepForm(UtilityStepForm):
    kind = StepKind.DEBUG
    step_type = DebugStep
