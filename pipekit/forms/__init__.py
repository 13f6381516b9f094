"""Step forms driven by the steps builder."""

from .base import BaseStepForm, FormState, LevelledStepForm
from .conformance import ConformanceCheckStepForm
from .marketplace import MarketplaceItemStepForm
from .search import Search
from .utility import DebugStepForm, EmailStepForm, HttpRequestStepForm, UtilityStepForm
from .wallet import WalletActionStepForm, WalletSelection

__all__ = [
    "BaseStepForm",
    "ConformanceCheckStepForm",
    "DebugStepForm",
    "EmailStepForm",
    "FormState",
    "HttpRequestStepForm",
    "LevelledStepForm",
    "MarketplaceItemStepForm",
    "Search",
    "UtilityStepForm",
    "WalletActionStepForm",
    "WalletSelection",
]
