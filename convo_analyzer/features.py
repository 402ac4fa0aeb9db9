"""Feature registry: static key -> label tables, partitioned into semantic and temporal."""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Literal

from convo_analyzer.errors import InvalidRequestError, UnknownFeatureError
from convo_analyzer.types import FeatureCategory

SEMANTIC_FEATURES: Mapping[str, str] = MappingProxyType(
    {
        "clientIntent": "Intenção Primária do Cliente",
        "overallSentiment": "Sentimento Geral do Cliente",
        "topicsDiscussed": "Tópicos Discutidos",
        "negotiationStage": "Estágio da Negociação",
        "emotionProfile": "Perfil Emocional",
        "objectionTypes": "Tipos de Objeção",
        "urgencyLevel": "Nível de Urgência",
        "trustLevel": "Nível de Confiança",
        "rapportScore": "Score de Rapport",
        "buyingTemperature": "Temperatura de Compra",
        # free-text forecast, so a string value
        "predictedOutcome": "Previsão de Desfecho",
    }
)

TEMPORAL_FEATURES: Mapping[str, str] = MappingProxyType(
    {
        "avgVendorResponseTime": "TMR Médio do Vendedor (min)",
        "avgClientResponseTime": "TMR Médio do Cliente (min)",
        "conversationDuration": "Duração da Conversa (min)",
        "hesitationGaps": "Gaps de Hesitação",
        "escalationSpeed": "Velocidade de Escalada da Conversa",
        "timeToFirstIntent": "Tempo até a Primeira Intenção (min)",
        "volatilityOfTiming": "Volatilidade Temporal",
        "finalMomentumScore": "Score Final de Momentum",
        "clientHesitationScore": "Score de Hesitação do Cliente",
    }
)

# Registry order: semantic first, then temporal. Used for stable schema/prompt output.
FEATURE_REGISTRY: Mapping[str, str] = MappingProxyType({**SEMANTIC_FEATURES, **TEMPORAL_FEATURES})

ALL = "all"


def lookup(key: str) -> str:
    """Return the human-readable label for key. Raises UnknownFeatureError."""
    try:
        return FEATURE_REGISTRY[key]
    except KeyError:
        raise UnknownFeatureError(key) from None


def all_keys() -> tuple[str, ...]:
    return tuple(FEATURE_REGISTRY)


def category_of(key: str) -> FeatureCategory:
    if key in SEMANTIC_FEATURES:
        return FeatureCategory.SEMANTIC
    if key in TEMPORAL_FEATURES:
        return FeatureCategory.TEMPORAL
    raise UnknownFeatureError(key)


def resolve_requested(requested: Literal["all"] | Iterable[str]) -> tuple[str, ...]:
    """
    Expand "all", drop duplicates and validate. Returns keys in registry order,
    so any permutation of the same set resolves identically.
    """
    if isinstance(requested, str):
        if requested != ALL:
            raise InvalidRequestError(f"requested features must be {ALL!r} or a list of keys, got {requested!r}")
        return all_keys()
    wanted = set()
    for key in requested:
        if key == ALL:
            return all_keys()
        if key not in FEATURE_REGISTRY:
            raise UnknownFeatureError(key)
        wanted.add(key)
    if not wanted:
        raise InvalidRequestError("at least one feature must be requested")
    return tuple(k for k in FEATURE_REGISTRY if k in wanted)
