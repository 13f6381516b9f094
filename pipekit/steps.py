"""Step value objects held by the steps builder."""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Annotated, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .catalog.models import MarketplaceItem, WalletAction, WalletVersion


class StepKind(str, Enum):
    """Every kind of step a pipeline can hold."""

    WALLET = "wallet"
    CREDENTIAL = "credential"
    CUSTOM_CHECK = "custom_check"
    CONFORMANCE_CHECK = "conformance_check"
    USE_CASE_VERIFICATION = "use_case_verification"
    EMAIL = "email"
    HTTP_REQUEST = "http_request"
    DEBUG = "debug"


UTILITY_KINDS = frozenset({StepKind.EMAIL, StepKind.HTTP_REQUEST, StepKind.DEBUG})
MARKETPLACE_KINDS = frozenset(
    {StepKind.CREDENTIAL, StepKind.CUSTOM_CHECK, StepKind.USE_CASE_VERIFICATION}
)


def _new_step_id() -> str:
    return uuid.uuid4().hex


class BaseStep(BaseModel):
    """Fields shared by every step.

    ``id`` identifies the step inside one builder session only; the id written
    to the compiled document is derived from the step content.
    """

    id: str = Field(default_factory=_new_step_id)
    continue_on_error: bool = False

    model_config = ConfigDict(frozen=True)


class WalletStep(BaseStep):
    kind: Literal[StepKind.WALLET] = StepKind.WALLET
    wallet: MarketplaceItem
    version: WalletVersion
    action: WalletAction


class CredentialStep(BaseStep):
    kind: Literal[StepKind.CREDENTIAL] = StepKind.CREDENTIAL
    credential: MarketplaceItem


class CustomCheckStep(BaseStep):
    kind: Literal[StepKind.CUSTOM_CHECK] = StepKind.CUSTOM_CHECK
    check: MarketplaceItem


class UseCaseVerificationStep(BaseStep):
    kind: Literal[StepKind.USE_CASE_VERIFICATION] = StepKind.USE_CASE_VERIFICATION
    use_case: MarketplaceItem


class ConformanceCheckStep(BaseStep):
    """A conformance test picked from the standards catalog.

    ``test`` is the full test path offered by the suite.
    """

    kind: Literal[StepKind.CONFORMANCE_CHECK] = StepKind.CONFORMANCE_CHECK
    standard: str
    version: str
    suite: str
    test: str

    @property
    def check_id(self) -> str:
        return self.test


class EmailPayload(BaseModel):
    recipient: str
    subject: Optional[str] = None
    body: Optional[str] = None
    sender: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("recipient")
    @classmethod
    def _check_recipient(cls, value: str) -> str:
        value = value.strip()
        local, _, domain = value.partition("@")
        if not local or "." not in domain:
            raise ValueError("recipient must be an email address")
        return value


HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


class HttpRequestPayload(BaseModel):
    method: HttpMethod = "GET"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Union[dict, list, str]] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.upper() if isinstance(value, str) else value

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return value


class EmailStep(BaseStep):
    kind: Literal[StepKind.EMAIL] = StepKind.EMAIL
    payload: EmailPayload


class HttpRequestStep(BaseStep):
    kind: Literal[StepKind.HTTP_REQUEST] = StepKind.HTTP_REQUEST
    payload: HttpRequestPayload


class DebugStep(BaseStep):
    kind: Literal[StepKind.DEBUG] = StepKind.DEBUG


UtilityStep = Union[EmailStep, HttpRequestStep, DebugStep]

Step = Annotated[
    Union[
        WalletStep,
        CredentialStep,
        CustomCheckStep,
        ConformanceCheckStep,
        UseCaseVerificationStep,
        EmailStep,
        HttpRequestStep,
        DebugStep,
    ],
    Field(discriminator="kind"),
]

STEP_TYPES: Dict[StepKind, type[BaseStep]] = {
    StepKind.WALLET: WalletStep,
    StepKind.CREDENTIAL: CredentialStep,
    StepKind.CUSTOM_CHECK: CustomCheckStep,
    StepKind.CONFORMANCE_CHECK: ConformanceCheckStep,
    StepKind.USE_CASE_VERIFICATION: UseCaseVerificationStep,
    StepKind.EMAIL: EmailStep,
    StepKind.HTTP_REQUEST: HttpRequestStep,
    StepKind.DEBUG: DebugStep,
}
