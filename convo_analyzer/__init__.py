"""
Conversation analyzer: extract semantic and temporal features from a client/vendor
chat transcript via an LLM constrained to a dynamically built JSON schema.
Public API: analyze_conversation, ConversationAnalyzer, AnalyzerSettings and the types below.
"""
from convo_analyzer.errors import (
    AnalysisFailedError,
    AnalysisRequestError,
    AnalyzerError,
    EmptyResponseError,
    InvalidRequestError,
    MalformedResponseError,
    ProviderHTTPError,
    ProviderTimeout,
    ProviderUnavailable,
    ResponseInvalidError,
    UnknownFeatureError,
)
from convo_analyzer.service import ConversationAnalyzer, analyze_conversation
from convo_analyzer.settings import AnalyzerSettings
from convo_analyzer.types import (
    AnalysisContext,
    AnalysisRequest,
    AnalysisResult,
    AnalyzerProvider,
    Feature,
    FeatureCategory,
    FeatureValue,
    Message,
    NextAction,
)

__all__ = [
    "analyze_conversation",
    "ConversationAnalyzer",
    "AnalyzerSettings",
    "AnalysisContext",
    "AnalysisRequest",
    "AnalysisResult",
    "AnalyzerProvider",
    "Feature",
    "FeatureCategory",
    "FeatureValue",
    "Message",
    "NextAction",
    "AnalyzerError",
    "AnalysisRequestError",
    "UnknownFeatureError",
    "InvalidRequestError",
    "ProviderHTTPError",
    "ProviderTimeout",
    "ProviderUnavailable",
    "EmptyResponseError",
    "MalformedResponseError",
    "ResponseInvalidError",
    "AnalysisFailedError",
]
