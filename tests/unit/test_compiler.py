"""Tests for compiling steps into a pipeline document."""

from pipekit.catalog import MarketplaceItem, MarketplaceItemType
from pipekit.compiler import _COMPILERS, compile_pipeline, compile_step, compile_steps
from pipekit.document import ActivityOptions, PipelineMetadata
from pipekit.schema import validate_document
from pipekit.steps import (
    STEP_TYPES,
    ConformanceCheckStep,
    CredentialStep,
    CustomCheckStep,
    DebugStep,
    EmailPayload,
    EmailStep,
    HttpRequestPayload,
    HttpRequestStep,
    UseCaseVerificationStep,
    WalletStep,
)

from conftest import AGE_CHECK, ALPHA, ALPHA_V1, LOGIN, LOGIN_USE_CASE, PID, SCAN

CONFORMANCE = ConformanceCheckStep(
    standard="openid4vp",
    version="draft-24",
    suite="wallet",
    test="openid4vp/draft-24/wallet/happy-flow",
)


def _samples():
    return [
        WalletStep(wallet=ALPHA, version=ALPHA_V1, action=LOGIN),
        CredentialStep(credential=PID),
        CustomCheckStep(check=AGE_CHECK),
        CONFORMANCE,
        UseCaseVerificationStep(use_case=LOGIN_USE_CASE),
        EmailStep(payload=EmailPayload(recipient="qa@example.com")),
        HttpRequestStep(payload=HttpRequestPayload(method="POST", url="https://api.example.com/x")),
        DebugStep(),
    ]


def test_every_step_type_has_a_compiler():
    assert set(_COMPILERS) == set(STEP_TYPES.values())
    assert {type(step) for step in _samples()} == set(STEP_TYPES.values())


def test_compiled_steps_use_resource_paths():
    compiled = compile_steps(_samples())

    assert [step["use"] for step in compiled] == [
        "mobile-automation",
        "credential-offer",
        "custom-check",
        "conformance-check",
        "use-case-verification-deeplink",
        "email",
        "http-request",
        "debug",
    ]
    assert compiled[0]["with"] == {
        "action_id": "acme/alpha-wallet/login",
        "version_id": "acme/alpha-wallet/1-0",
    }
    assert compiled[1]["with"] == {"credential_id": "acme/pid-credential"}
    assert compiled[3]["with"] == {"check_id": "openid4vp/draft-24/wallet/happy-flow"}
    assert compiled[5]["with"] == {"payload": {"recipient": "qa@example.com"}}
    assert compiled[6]["with"] == {
        "payload": {"method": "POST", "url": "https://api.example.com/x"}
    }
    assert "with" not in compiled[7]


def test_step_ids_are_canonical_and_unique():
    compiled = compile_steps(_samples() + [DebugStep(), DebugStep()])

    ids = [step["id"] for step in compiled]
    assert ids[:8] == [
        "login",
        "pid-credential",
        "age-check",
        "happy-flow",
        "login-verification",
        "email-qa",
        "http-post-api-example-com",
        "debug",
    ]
    assert ids[8:] == ["debug-1", "debug-2"]


def test_deeplink_points_at_previous_conformance_check():
    compiled = compile_steps(
        [CONFORMANCE, WalletStep(wallet=ALPHA, version=ALPHA_V1, action=SCAN)]
    )
    assert compiled[1]["with"]["parameters"] == {
        "deeplink": "${{happy-flow.outputs.deeplink}}"
    }


def test_deeplink_skips_wallet_steps_and_uses_plain_outputs():
    compiled = compile_steps(
        [
            UseCaseVerificationStep(use_case=LOGIN_USE_CASE),
            WalletStep(wallet=ALPHA, version=ALPHA_V1, action=LOGIN),
            WalletStep(wallet=ALPHA, version=ALPHA_V1, action=SCAN),
        ]
    )
    assert compiled[2]["with"]["parameters"]["deeplink"] == "${{login-verification.outputs}}"
    assert "parameters" not in compiled[1]["with"]


def test_deeplink_without_source_keeps_placeholder():
    step = compile_step(WalletStep(wallet=ALPHA, version=ALPHA_V1, action=SCAN))
    assert step["with"]["parameters"]["deeplink"] == "${{get-deeplink}}"


def test_continue_on_error_is_carried():
    step = CredentialStep(credential=PID, continue_on_error=True)
    assert compile_step(step)["continue_on_error"] is True


def test_compile_pipeline_builds_valid_document():
    document = compile_pipeline(
        PipelineMetadata(name="Nightly"),
        ActivityOptions(start_to_close_timeout="5m"),
        _samples(),
        global_runner_id="runner-1",
    )

    assert document.name == "Nightly"
    assert document.activity_options.start_to_close_timeout == "5m"
    assert document.runtime.global_runner_id == "runner-1"
    assert len(document.steps) == 8
    assert validate_document(document).ok


def test_non_ascii_item_path_gives_valid_step_id():
    passport = MarketplaceItem(
        id="c9",
        name="Паспорт",
        path="acme/паспорт",
        type=MarketplaceItemType.CREDENTIALS,
    )
    document = compile_pipeline(
        PipelineMetadata(name="Документы"), ActivityOptions(), [CredentialStep(credential=passport)]
    )

    assert document.steps[0]["id"] == "паспорт"
    result = validate_document(document)
    assert result.ok, [str(issue) for issue in result.issues]


def test_compile_is_deterministic():
    steps = _samples()
    first = compile_pipeline(PipelineMetadata(name="x"), ActivityOptions(), steps)
    second = compile_pipeline(PipelineMetadata(name="x"), ActivityOptions(), steps)
    assert first == second
