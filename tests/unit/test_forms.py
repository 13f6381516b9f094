"""Tests for the step forms."""

import pytest

from pipekit.catalog import InMemoryCatalog, MarketplaceItem, MarketplaceItemType
from pipekit.errors import (
    CatalogNotReadyError,
    InvalidStateError,
    RecordNotFoundError,
    TransportError,
)
from pipekit.forms import (
    ConformanceCheckStepForm,
    DebugStepForm,
    EmailStepForm,
    FormState,
    HttpRequestStepForm,
    MarketplaceItemStepForm,
    WalletActionStepForm,
    WalletSelection,
)
from pipekit.steps import (
    ConformanceCheckStep,
    CredentialStep,
    DebugStep,
    StepKind,
    UseCaseVerificationStep,
    WalletStep,
)

from conftest import ALPHA, ALPHA_V1, ALPHA_V2, BETA, BETA_SCAN, BETA_V1, OPENID4VP, SCAN


class BrokenCatalog(InMemoryCatalog):
    async def list_standards(self):
        raise TransportError("catalog unavailable", status_code=503)


# ----------------------------------------------------------------------
# conformance


@pytest.mark.asyncio
async def test_conformance_form_walks_down_to_a_test(catalog):
    submitted = []
    form = ConformanceCheckStepForm(catalog, on_submit=submitted.append)
    assert form.state == FormState.LOADING

    await form.load()
    assert form.state == FormState.SELECT_STANDARD

    await form.select_standard("openid4vp")
    assert form.state == FormState.SELECT_VERSION
    assert [v.uid for v in form.available_versions] == ["draft-24", "draft-23"]

    await form.select_version("draft-23")
    assert form.state == FormState.SELECT_SUITE

    await form.select_suite("wallet")
    # a suite with a single test completes on its own
    assert form.state == FormState.READY
    assert submitted == [form.step]
    assert form.step == ConformanceCheckStep(
        id=form.step.id,
        standard="openid4vp",
        version="draft-23",
        suite="wallet",
        test="openid4vp/draft-23/wallet/basic",
    )


@pytest.mark.asyncio
async def test_single_option_levels_auto_advance_to_ready(catalog):
    submitted = []
    form = ConformanceCheckStepForm(catalog, on_submit=submitted.append)
    await form.load()

    await form.select_standard("ewc")

    assert form.state == FormState.READY
    assert len(submitted) == 1
    assert submitted[0].test == "ewc/v3/issuance/pre-auth"


@pytest.mark.asyncio
async def test_auto_advance_is_idempotent(catalog):
    form = ConformanceCheckStepForm(catalog)
    await form.load()
    await form.select_standard(OPENID4VP)

    await form.select_version("draft-24")
    first = (form.state, dict(form.selection))
    await form.select_version("draft-24")

    assert (form.state, dict(form.selection)) == first
    assert form.state == FormState.SELECT_TEST
    assert form.selection["suite"].uid == "wallet"


@pytest.mark.asyncio
async def test_discard_clears_deeper_levels(catalog):
    form = ConformanceCheckStepForm(catalog)
    await form.load()
    await form.select_standard("openid4vp")
    await form.select_version("draft-24")
    assert set(form.selection) == {"standard", "version", "suite"}

    form.discard_version()

    assert form.state == FormState.SELECT_VERSION
    assert set(form.selection) == {"standard"}
    assert form.available_suites == ()


@pytest.mark.asyncio
async def test_unknown_option_leaves_form_unchanged(catalog):
    form = ConformanceCheckStepForm(catalog)
    await form.load()
    await form.select_standard("openid4vp")

    await form.select_version("draft-99")

    assert isinstance(form.last_error, RecordNotFoundError)
    assert form.state == FormState.SELECT_VERSION
    assert set(form.selection) == {"standard"}


@pytest.mark.asyncio
async def test_selection_before_load_is_rejected(catalog):
    form = ConformanceCheckStepForm(catalog)
    with pytest.raises(CatalogNotReadyError):
        await form.select_standard("openid4vp")


@pytest.mark.asyncio
async def test_load_failure_enters_error_state():
    form = ConformanceCheckStepForm(BrokenCatalog())
    await form.load()

    assert form.state == FormState.ERROR
    assert isinstance(form.error, TransportError)
    with pytest.raises(CatalogNotReadyError):
        await form.select_standard("openid4vp")


@pytest.mark.asyncio
async def test_ready_form_rejects_further_actions(catalog):
    form = ConformanceCheckStepForm(catalog)
    await form.load()
    await form.select_standard("ewc")

    with pytest.raises(InvalidStateError):
        await form.select_standard("openid4vp")
    with pytest.raises(InvalidStateError):
        form.discard_standard()


# ----------------------------------------------------------------------
# wallet


@pytest.mark.asyncio
async def test_wallet_form_selects_wallet_version_action(catalog):
    submitted = []
    form = WalletActionStepForm(catalog, on_submit=submitted.append, debounce=0)
    assert form.state == FormState.SELECT_WALLET

    await form.wallet_search.fetch("alpha")
    assert form.options("wallet") == [ALPHA]

    await form.select_wallet(ALPHA)
    assert form.state == FormState.SELECT_VERSION
    assert form.found_versions == [ALPHA_V1, ALPHA_V2]

    await form.select_version(ALPHA_V2)
    assert form.state == FormState.SELECT_ACTION
    assert len(form.action_search.results) == 2

    await form.select_action(SCAN)
    assert form.state == FormState.READY
    assert submitted == [WalletStep(id=submitted[0].id, wallet=ALPHA, version=ALPHA_V2, action=SCAN)]


@pytest.mark.asyncio
async def test_wallet_with_single_version_and_action_completes(catalog):
    submitted = []
    form = WalletActionStepForm(catalog, on_submit=submitted.append, debounce=0)
    await form.wallet_search.fetch("beta")

    await form.select_wallet("w2")

    assert form.state == FormState.READY
    assert submitted[0].version == BETA_V1
    assert submitted[0].action == BETA_SCAN


@pytest.mark.asyncio
async def test_wallet_search_is_debounced(catalog):
    form = WalletActionStepForm(catalog, debounce=0.01)
    form.search_wallets("al")
    form.search_wallets("beta")
    await form.wallet_search.wait()

    assert form.wallet_search.results == [BETA]
    form.close()


@pytest.mark.asyncio
async def test_wallet_cannot_be_selected_while_search_pending(catalog):
    form = WalletActionStepForm(catalog, debounce=0.01)
    form.search_wallets("alpha")
    await form.wallet_search.wait()
    assert form.options("wallet") == [ALPHA]

    form.search_wallets("beta")
    assert form.wallet_search.pending
    with pytest.raises(CatalogNotReadyError):
        await form.select_wallet(ALPHA)
    assert form.state == FormState.SELECT_WALLET
    assert form.selection == {}

    await form.wallet_search.wait()
    await form.select_wallet(BETA)
    assert form.state == FormState.READY


@pytest.mark.asyncio
async def test_seeded_wallet_form_starts_at_action(catalog):
    form = WalletActionStepForm(catalog, last_selection=WalletSelection(ALPHA, ALPHA_V1))
    assert form.state == FormState.SELECT_ACTION

    await form.load()

    assert [action.id for action in form.options("action")] == ["a1", "a2"]


@pytest.mark.asyncio
async def test_seeded_wallet_that_vanished_reverts_to_wallet(catalog):
    gone = MarketplaceItem(
        id="w9", name="Gone", path="acme/gone", type=MarketplaceItemType.WALLETS
    )
    form = WalletActionStepForm(catalog, last_selection=WalletSelection(gone, ALPHA_V1))

    await form.load()

    assert form.state == FormState.SELECT_WALLET
    assert form.selection == {}
    assert isinstance(form.last_error, RecordNotFoundError)


@pytest.mark.asyncio
async def test_wallet_removed_after_search_reverts_selection(catalog):
    form = WalletActionStepForm(catalog, debounce=0)
    await form.wallet_search.fetch("alpha")
    catalog.items = [item for item in catalog.items if item.id != "w1"]

    await form.select_wallet(ALPHA)

    assert form.state == FormState.SELECT_WALLET
    assert "wallet" not in form.selection
    assert isinstance(form.last_error, RecordNotFoundError)


@pytest.mark.asyncio
async def test_reselecting_wallet_drops_stale_actions(catalog):
    form = WalletActionStepForm(catalog, debounce=0)
    await form.wallet_search.fetch("")
    await form.select_wallet(ALPHA)
    await form.select_version(ALPHA_V1)
    assert form.action_search.results

    form.discard_wallet()

    assert form.state == FormState.SELECT_WALLET
    assert form.action_search.results == []
    assert form.found_versions == []


# ----------------------------------------------------------------------
# marketplace


@pytest.mark.asyncio
async def test_marketplace_form_search_then_select(catalog):
    submitted = []
    form = MarketplaceItemStepForm(
        StepKind.CREDENTIAL, catalog, on_submit=submitted.append, debounce=0
    )
    assert form.state == FormState.SEARCH

    await form.load()
    assert form.state == FormState.SELECT_ITEM
    assert [item.id for item in form.found_items] == ["c1", "c2"]

    form.search_items("nothing-matches")
    await form.search.wait()
    assert form.state == FormState.SEARCH

    await form.search.fetch("mdl")
    form.select_item("acme/mdl-credential")
    assert form.state == FormState.READY
    assert isinstance(submitted[0], CredentialStep)
    assert submitted[0].credential.id == "c2"


@pytest.mark.asyncio
async def test_marketplace_item_cannot_be_selected_while_search_pending(catalog):
    form = MarketplaceItemStepForm(StepKind.CREDENTIAL, catalog, debounce=0.01)
    await form.load()

    form.search_items("mdl")
    with pytest.raises(CatalogNotReadyError):
        form.select_item("c1")
    assert form.step is None

    await form.search.wait()
    form.select_item("c2")
    assert isinstance(form.step, CredentialStep)


@pytest.mark.asyncio
async def test_marketplace_form_builds_use_case_step(catalog):
    form = MarketplaceItemStepForm(StepKind.USE_CASE_VERIFICATION, catalog)
    await form.load()
    form.select_item("u1")
    assert isinstance(form.step, UseCaseVerificationStep)


@pytest.mark.asyncio
async def test_marketplace_form_rejects_unknown_item(catalog):
    form = MarketplaceItemStepForm(StepKind.CUSTOM_CHECK, catalog)
    await form.load()
    form.select_item("c1")
    assert isinstance(form.last_error, RecordNotFoundError)
    assert form.state == FormState.SELECT_ITEM


def test_marketplace_form_needs_marketplace_kind(catalog):
    with pytest.raises(InvalidStateError):
        MarketplaceItemStepForm(StepKind.WALLET, catalog)


# ----------------------------------------------------------------------
# utility


def test_email_form_reports_issues_until_valid():
    form = EmailStepForm()
    issues = form.submit(recipient="not-an-address")
    assert issues and issues[0].path == "recipient"
    assert form.state == FormState.EDIT

    assert form.submit(recipient="qa@example.com", subject="") == []
    assert form.state == FormState.READY
    assert form.step.payload.subject is None


def test_http_form_parses_json_body():
    form = HttpRequestStepForm()
    issues = form.submit(
        method="post", url="https://api.example.com/hook", body='{"ok": true}', headers={}
    )
    assert issues == []
    assert form.step.payload.method == "POST"
    assert form.step.payload.body == {"ok": True}
    assert form.step.payload.headers == {}


def test_http_form_keeps_non_json_body_as_text():
    form = HttpRequestStepForm()
    form.submit(url="https://api.example.com", body="42")
    assert form.step.payload.body == "42"


def test_http_form_rejects_bad_url():
    form = HttpRequestStepForm()
    issues = form.submit(url="ftp://example.com")
    assert [issue.path for issue in issues] == ["url"]
    assert form.active


def test_debug_form_completes_immediately():
    submitted = []
    form = DebugStepForm(on_submit=submitted.append)
    assert form.submit() == []
    assert isinstance(submitted[0], DebugStep)


def test_closed_form_cannot_complete():
    form = DebugStepForm()
    form.close()
    assert form.state == FormState.DISCARDED
    with pytest.raises(InvalidStateError):
        form.submit()
