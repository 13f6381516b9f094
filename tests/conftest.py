"""Shared fixtures."""

import pytest

from pipekit.catalog import (
    InMemoryCatalog,
    MarketplaceItem,
    MarketplaceItemType,
    Standard,
    StandardVersion,
    Suite,
    WalletAction,
    WalletVersion,
)
from pipekit.runner import InMemoryJobRunner
from pipekit.store import InMemoryRecordStore

ALPHA = MarketplaceItem(
    id="w1", name="Alpha Wallet", path="acme/alpha-wallet", type=MarketplaceItemType.WALLETS
)
BETA = MarketplaceItem(
    id="w2", name="Beta Wallet", path="acme/beta-wallet", type=MarketplaceItemType.WALLETS
)
ALPHA_V1 = WalletVersion(id="v1", tag="1.0", path="acme/alpha-wallet/1-0")
ALPHA_V2 = WalletVersion(id="v2", tag="2.0", path="acme/alpha-wallet/2-0")
BETA_V1 = WalletVersion(id="v3", tag="1.0", path="acme/beta-wallet/1-0")
LOGIN = WalletAction(id="a1", name="Login", path="acme/alpha-wallet/login", code="tap login")
SCAN = WalletAction(
    id="a2", name="Scan QR", path="acme/alpha-wallet/scan-qr", code="openLink: ${DL}"
)
BETA_SCAN = WalletAction(
    id="a3", name="Scan", path="acme/beta-wallet/scan", code="openLink: ${deeplink}"
)
PID = MarketplaceItem(
    id="c1", name="PID", path="acme/pid-credential", type=MarketplaceItemType.CREDENTIALS
)
MDL = MarketplaceItem(
    id="c2", name="mDL", path="acme/mdl-credential", type=MarketplaceItemType.CREDENTIALS
)
AGE_CHECK = MarketplaceItem(
    id="k1", name="Age check", path="acme/age-check", type=MarketplaceItemType.CUSTOM_CHECKS
)
LOGIN_USE_CASE = MarketplaceItem(
    id="u1",
    name="Login use case",
    path="acme/login-verification",
    type=MarketplaceItemType.USE_CASES_VERIFICATIONS,
)

WALLET_SUITE = Suite(
    uid="wallet",
    name="Wallet",
    paths=("openid4vp/draft-24/wallet/happy-flow", "openid4vp/draft-24/wallet/negative"),
)
VP_DRAFT_24 = StandardVersion(uid="draft-24", name="Draft 24", suites=(WALLET_SUITE,))
VP_DRAFT_23 = StandardVersion(
    uid="draft-23",
    name="Draft 23",
    suites=(
        Suite(uid="verifier", name="Verifier", paths=("openid4vp/draft-23/verifier/basic",)),
        Suite(uid="wallet", name="Wallet", paths=("openid4vp/draft-23/wallet/basic",)),
    ),
)
OPENID4VP = Standard(uid="openid4vp", name="OpenID4VP", versions=(VP_DRAFT_24, VP_DRAFT_23))
EWC = Standard(
    uid="ewc",
    name="EWC",
    versions=(
        StandardVersion(
            uid="v3",
            name="v3",
            suites=(Suite(uid="issuance", name="Issuance", paths=("ewc/v3/issuance/pre-auth",)),),
        ),
    ),
)


def make_catalog() -> InMemoryCatalog:
    return InMemoryCatalog(
        standards=[OPENID4VP, EWC],
        items=[ALPHA, BETA, PID, MDL, AGE_CHECK, LOGIN_USE_CASE],
        wallet_versions={"w1": [ALPHA_V1, ALPHA_V2], "w2": [BETA_V1]},
        wallet_actions={"w1": [LOGIN, SCAN], "w2": [BETA_SCAN]},
    )


@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def runner():
    return InMemoryJobRunner(runner_ids=["runner-1"], capacity=1)


@pytest.fixture(autouse=True)
def _no_config_file(monkeypatch, tmp_path):
    monkeypatch.setenv("PIPEKIT_CONFIG", str(tmp_path / "missing.yaml"))
    for name in ("PIPEKIT_RUNNER", "PIPEKIT_STORE", "PIPEKIT_CATALOG", "PIPEKIT_API_URL"):
        monkeypatch.delenv(name, raising=False)
