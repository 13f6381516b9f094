"""Compile builder steps into a :class:`PipelineDocument`."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, get_args
from urllib.parse import urlparse

from .canonify import canonify, canonify_plain, last_path_segment
from .constants import DEEPLINK_STEP_ID_PLACEHOLDER
from .document import (
    ActivityOptions,
    PipelineDocument,
    PipelineMetadata,
    Runtime,
    TemporalRuntime,
)
from .steps import (
    BaseStep,
    ConformanceCheckStep,
    CredentialStep,
    CustomCheckStep,
    DebugStep,
    EmailStep,
    HttpRequestStep,
    Step,
    UseCaseVerificationStep,
    WalletStep,
)

logger = logging.getLogger(__name__)

CompiledStep = Dict[str, Any]

WALLET_USE = "mobile-automation"
CONFORMANCE_USE = "conformance-check"


def _compiled(step: BaseStep, use: str, step_id: str, with_: Optional[dict]) -> CompiledStep:
    compiled: CompiledStep = {
        "use": use,
        "id": step_id,
        "continue_on_error": step.continue_on_error,
    }
    if with_ is not None:
        compiled["with"] = with_
    return compiled


def _compile_wallet(step: WalletStep) -> CompiledStep:
    with_: Dict[str, Any] = {
        "action_id": step.action.path,
        "version_id": step.version.path,
    }
    if step.action.requires_deeplink:
        with_["parameters"] = {"deeplink": "${{" + DEEPLINK_STEP_ID_PLACEHOLDER + "}}"}
    return _compiled(step, WALLET_USE, last_path_segment(step.action.path), with_)


def _compile_credential(step: CredentialStep) -> CompiledStep:
    path = step.credential.path
    return _compiled(step, "credential-offer", last_path_segment(path), {"credential_id": path})


def _compile_custom_check(step: CustomCheckStep) -> CompiledStep:
    path = step.check.path
    return _compiled(step, "custom-check", last_path_segment(path), {"check_id": path})


def _compile_conformance_check(step: ConformanceCheckStep) -> CompiledStep:
    return _compiled(
        step,
        CONFORMANCE_USE,
        last_path_segment(step.check_id),
        {"check_id": step.check_id},
    )


def _compile_use_case(step: UseCaseVerificationStep) -> CompiledStep:
    path = step.use_case.path
    return _compiled(
        step,
        "use-case-verification-deeplink",
        last_path_segment(path),
        {"use_case_id": path},
    )


def _compile_email(step: EmailStep) -> CompiledStep:
    payload = step.payload.model_dump(exclude_none=True)
    payload = {key: value for key, value in payload.items() if value != ""}
    user = step.payload.recipient.split("@")[0] or "email"
    return _compiled(step, "email", f"email-{user}", {"payload": payload})


def _compile_http_request(step: HttpRequestStep) -> CompiledStep:
    payload: Dict[str, Any] = {"method": step.payload.method, "url": step.payload.url}
    if step.payload.headers:
        payload["headers"] = dict(step.payload.headers)
    if step.payload.body not in (None, ""):
        payload["body"] = step.payload.body
    host = urlparse(step.payload.url).hostname or "unknown"
    step_id = f"http-{step.payload.method.lower()}-{host}"
    return _compiled(step, "http-request", step_id, {"payload": payload})


def _compile_debug(step: DebugStep) -> CompiledStep:
    return _compiled(step, "debug", "debug", None)


_COMPILERS: Dict[type, Callable[[Any], CompiledStep]] = {
    WalletStep: _compile_wallet,
    CredentialStep: _compile_credential,
    CustomCheckStep: _compile_custom_check,
    ConformanceCheckStep: _compile_conformance_check,
    UseCaseVerificationStep: _compile_use_case,
    EmailStep: _compile_email,
    HttpRequestStep: _compile_http_request,
    DebugStep: _compile_debug,
}


def _check_exhaustive() -> None:
    variants = set(get_args(get_args(Step)[0]))
    missing = variants - set(_COMPILERS)
    if missing:
        names = ", ".join(sorted(variant.__name__ for variant in missing))
        raise TypeError(f"No compile function registered for: {names}")


_check_exhaustive()


def assign_step_ids(compiled: List[CompiledStep]) -> List[CompiledStep]:
    """Canonify the id hints in place, suffixing repeats with -1, -2..."""
    used: set[str] = set()
    for step in compiled:
        step_id = canonify(
            canonify_plain(step["id"], fallback=step["use"]), exists=used.__contains__
        )
        used.add(step_id)
        step["id"] = step_id
    return compiled


def link_deeplinks(compiled: List[CompiledStep]) -> List[CompiledStep]:
    """Point each wallet step's deeplink at the closest earlier non-wallet step.

    Conformance checks expose the link under ``outputs.deeplink``; every
    other step exposes it as ``outputs``.
    """
    for index, step in enumerate(compiled):
        if step["use"] != WALLET_USE:
            continue
        parameters = step["with"].get("parameters") or {}
        if "deeplink" not in parameters:
            continue
        previous = next(
            (s for s in reversed(compiled[:index]) if s["use"] != WALLET_USE), None
        )
        if previous is None:
            logger.debug(f"No step before {step['id']} can provide a deeplink")
            continue
        reference = f"{previous['id']}.outputs"
        if previous["use"] == CONFORMANCE_USE:
            reference += ".deeplink"
        parameters["deeplink"] = parameters["deeplink"].replace(
            DEEPLINK_STEP_ID_PLACEHOLDER, reference
        )
    return compiled


def compile_step(step: BaseStep) -> CompiledStep:
    """Shape a single step; the returned id is an uncanonified hint."""
    return _COMPILERS[type(step)](step)


def compile_steps(steps: Sequence[BaseStep]) -> List[CompiledStep]:
    return link_deeplinks(assign_step_ids([compile_step(step) for step in steps]))


def compile_pipeline(
    metadata: PipelineMetadata,
    activity_options: ActivityOptions,
    steps: Sequence[BaseStep],
    global_runner_id: Optional[str] = None,
) -> PipelineDocument:
    """Build the workflow document for ``steps``.

    The result is not validated; see :func:`pipekit.schema.validate_document`.
    """
    runtime = Runtime(
        temporal=TemporalRuntime(activity_options=activity_options),
        global_runner_id=global_runner_id,
    )
    return PipelineDocument(
        name=metadata.name, runtime=runtime, steps=tuple(compile_steps(steps))
    )
