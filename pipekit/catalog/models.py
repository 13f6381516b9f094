"""Records exposed by the marketplace and standards catalog."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import DEEPLINK_MARKERS


class MarketplaceItemType(str, Enum):
    """Collections searchable through the marketplace."""

    WALLETS = "wallets"
    CREDENTIALS = "credentials"
    USE_CASES_VERIFICATIONS = "use_cases_verifications"
    CUSTOM_CHECKS = "custom_checks"


class MarketplaceItem(BaseModel):
    """A published marketplace entry addressed by its ``path``."""

    id: str
    name: str
    path: str
    type: MarketplaceItemType
    organization: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class WalletVersion(BaseModel):
    """A released build of a wallet."""

    id: str
    tag: str
    path: str

    model_config = ConfigDict(frozen=True)


class WalletAction(BaseModel):
    """A scripted interaction that can be run against a wallet."""

    id: str
    name: str
    path: str
    code: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def requires_deeplink(self) -> bool:
        """``True`` when the action script consumes a deeplink."""
        return any(marker in self.code for marker in DEEPLINK_MARKERS)


class Suite(BaseModel):
    """A conformance test suite and the test paths it offers."""

    uid: str
    name: str
    paths: tuple[str, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)


class StandardVersion(BaseModel):
    uid: str
    name: str
    suites: tuple[Suite, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)


class Standard(BaseModel):
    """Top level of the conformance catalog hierarchy."""

    uid: str
    name: str
    versions: tuple[StandardVersion, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)
