"""Request/result models: aliases, tagged feature values, immutability."""
import pytest
from pydantic import ValidationError

from convo_analyzer.types import AnalysisRequest, AnalysisResult, Feature, FeatureCategory, Message


def test_result_round_trip_from_model_text() -> None:
    result = AnalysisResult.model_validate_json(
        '{"features":[{"name":"X","key":"clientIntent","value":"buy","type":"semantic"}]}'
    )
    assert len(result.features) == 1
    f = result.features[0]
    assert (f.name, f.key, f.type, f.explanation) == ("X", "clientIntent", FeatureCategory.SEMANTIC, None)
    assert f.value.kind == "string"
    assert f.value.payload == "buy"
    assert result.next_action is None


def test_dump_emits_plain_value_and_camel_case() -> None:
    result = AnalysisResult.model_validate(
        {
            "features": [{"name": "D", "key": "conversationDuration", "value": 4.5, "type": "temporal"}],
            "nextAction": {"action": "Enviar proposta", "explanation": "Cliente pronto"},
        }
    )
    dumped = result.model_dump(mode="json", by_alias=True, exclude_none=True)
    assert dumped["features"][0]["value"] == 4.5
    assert dumped["nextAction"]["action"] == "Enviar proposta"
    assert AnalysisResult.model_validate(dumped) == result


def test_temporal_value_must_be_number() -> None:
    with pytest.raises(ValidationError):
        Feature.model_validate({"name": "D", "key": "conversationDuration", "value": "long", "type": "temporal"})
    with pytest.raises(ValidationError):
        Feature.model_validate({"name": "D", "key": "conversationDuration", "value": True, "type": "temporal"})


def test_temporal_numeric_string_is_converted() -> None:
    f = Feature.model_validate({"name": "D", "key": "conversationDuration", "value": "2,5", "type": "temporal"})
    assert f.value.kind == "number"
    assert f.value.payload == 2.5


def test_semantic_value_must_be_string() -> None:
    with pytest.raises(ValidationError):
        Feature.model_validate({"name": "X", "key": "clientIntent", "value": 3, "type": "semantic"})


def test_explicit_value_kind_must_match_category() -> None:
    with pytest.raises(ValidationError):
        Feature.model_validate(
            {"name": "X", "key": "clientIntent", "value": {"kind": "number", "payload": 1}, "type": "semantic"}
        )


def test_models_are_frozen() -> None:
    msg = Message(text="Oi", timestamp=0, role="client")
    with pytest.raises(ValidationError):
        msg.text = "changed"


def test_request_accepts_camel_case_and_all_in_list() -> None:
    req = AnalysisRequest.model_validate(
        {
            "messages": [{"text": "Oi", "timestamp": 0, "role": "client"}],
            "requestedFeatures": ["all"],
            "productOrService": "Plano",
            "includeNextAction": True,
        }
    )
    assert req.requested_features == "all"
    assert req.context.product_or_service == "Plano"
    assert req.context.include_next_action is True


def test_request_accepts_legacy_requested_name() -> None:
    req = AnalysisRequest.model_validate({"messages": [], "requested": ["clientIntent"]})
    assert req.requested_features == ["clientIntent"]


def test_request_rejects_bad_role() -> None:
    with pytest.raises(ValidationError):
        AnalysisRequest.model_validate(
            {"messages": [{"text": "Oi", "timestamp": 0, "role": "bot"}], "requestedFeatures": "all"}
        )


@pytest.mark.parametrize(
    "value",
    [
        {"kind": "number", "payload": "abc"},
        {"kind": "number", "payload": float("nan")},
        {"kind": "string", "payload": 3},
    ],
)
def test_explicit_value_payload_must_match_kind(value) -> None:
    with pytest.raises(ValidationError):
        Feature.model_validate({"name": "D", "key": "conversationDuration", "value": value, "type": "temporal"})


def test_explicit_number_value_is_accepted() -> None:
    f = Feature.model_validate(
        {"name": "D", "key": "conversationDuration", "value": {"kind": "number", "payload": 3}, "type": "temporal"}
    )
    assert f.value.payload == 3


@pytest.mark.parametrize("text", ["1,000", "12,345", "1.234,5", "1,2,3", "inf", "nan"])
def test_ambiguous_numeric_strings_are_rejected(text: str) -> None:
    with pytest.raises(ValidationError):
        Feature.model_validate({"name": "D", "key": "conversationDuration", "value": text, "type": "temporal"})


def test_overflowing_integer_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Feature.model_validate({"name": "D", "key": "conversationDuration", "value": 10**400, "type": "temporal"})
