"""
Dynamic JSON schema for the model output. Strict structured-output compatible:
every property is required, optional fields are nullable, no extra properties.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from convo_analyzer.features import category_of, lookup, resolve_requested
from convo_analyzer.types import FeatureCategory

SCHEMA_NAME = "conversation_analysis"

SchemaSpec = dict[str, Any]

_FEATURE_FIELDS = ("name", "key", "value", "type", "explanation")


def _value_schema(key: str, category: FeatureCategory) -> dict[str, Any]:
    label = lookup(key)
    if category == FeatureCategory.TEMPORAL:
        return {
            "type": "number",
            "description": f"Valor numérico para {label}. Tempos e durações em minutos.",
        }
    return {"type": "string", "description": f"Valor extraído para {label}."}


def build_feature_schema(key: str) -> SchemaSpec:
    """Schema fragment for one feature: key and type are pinned to single-value enums."""
    category = category_of(key)
    label = lookup(key)
    return {
        "type": "object",
        "description": label,
        "properties": {
            "name": {"type": "string", "description": label},
            "key": {"type": "string", "enum": [key]},
            "value": _value_schema(key, category),
            "type": {"type": "string", "enum": [category.value]},
            "explanation": {
                "type": ["string", "null"],
                "description": "Justificativa para o valor atribuído.",
            },
        },
        "required": list(_FEATURE_FIELDS),
        "additionalProperties": False,
    }


def build_next_action_schema() -> SchemaSpec:
    return {
        "type": "object",
        "properties": {
            "action": {"type": "string", "description": "A próxima ação otimizada para o vendedor."},
            "explanation": {
                "type": "string",
                "description": "Por que essa ação é a mais adequada neste momento.",
            },
        },
        "required": ["action", "explanation"],
        "additionalProperties": False,
    }


def build_dynamic_schema(keys: Iterable[str], include_next_action: bool) -> SchemaSpec:
    """
    Top-level schema: `features` is an array whose items match one of the requested
    per-key fragments (discriminated by the `key` enum). `nextAction` is required
    when include_next_action is set and forbidden otherwise.
    Keys are emitted in registry order, so any permutation yields the same schema.
    """
    ordered = resolve_requested(list(keys))
    properties: dict[str, Any] = {
        "features": {
            "type": "array",
            "items": {"anyOf": [build_feature_schema(k) for k in ordered]},
        },
    }
    required = ["features"]
    if include_next_action:
        properties["nextAction"] = build_next_action_schema()
        required.append("nextAction")
    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }
