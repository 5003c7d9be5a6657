from labwise.normalization.client_base import BaseCompletionClient
from labwise.normalization.factory import CompletionClientFactory
from labwise.normalization.models import AnalysisResult, Finding, FindingStatus
from labwise.normalization.normalizer import ResponseNormalizer

__all__ = [
    "AnalysisResult",
    "BaseCompletionClient",
    "CompletionClientFactory",
    "Finding",
    "FindingStatus",
    "ResponseNormalizer",
]
