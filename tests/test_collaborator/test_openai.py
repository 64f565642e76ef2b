"""Tests for the OpenAI collaborator planners, parsers and error mapping."""

import base64
import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from styledna.collaborator import (
    OpenAICollaborator,
    StyleCollaborator,
    parse_analysis,
    parse_generation,
    parse_refinement,
    plan_analyze,
    plan_generate,
    plan_refine,
    size_for,
)
from styledna.collaborator._openai import locked_variables, translate_error
from styledna.errors import CollaboratorError
from styledna.types import Analysis, GenerationSettings

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _chat_response(content: object) -> dict[str, object]:
    text = content if isinstance(content, str) else json.dumps(content)
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


class _Endpoint:
    def __init__(self, result: object) -> None:
        self.result = result
        self.calls: list[dict[str, object]] = []

    def __call__(self, **kwargs: object) -> object:
        self.calls.append(kwargs)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _client(*, chat: object = None, images: object = None) -> SimpleNamespace:
    return SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=_Endpoint(chat))),
        images=SimpleNamespace(generate=_Endpoint(images)),
    )


# =============================================================================
# planners
# =============================================================================


def test_size_for_known_and_unknown_ratios() -> None:
    assert size_for("1:1") == "1024x1024"
    assert size_for("16:9") == "1792x1024"
    assert size_for("4:5") == "1024x1792"
    assert size_for("3:2") == "1024x1024"


def test_plan_analyze_sends_image_as_data_url() -> None:
    plan = plan_analyze(b"img", "style+palette", media_type="image/png", model="gpt-4o-mini")

    assert plan.request["model"] == "gpt-4o-mini"
    assert plan.request["temperature"] == 0.3
    assert plan.request["response_format"] == {"type": "json_object"}
    system, user = plan.request["messages"]
    assert system["role"] == "system"
    text_part, image_part = user["content"]
    assert "style+palette" in text_part["text"]
    encoded = base64.b64encode(b"img").decode("ascii")
    assert image_part["image_url"]["url"] == f"data:image/png;base64,{encoded}"


def test_locked_variables_always_include_style_dna() -> None:
    locked = locked_variables({"scene": True, "subject": False}, {"style_dna": "ink", "subject": "fox", "scene": "a"})
    assert locked == [{"key": "style_dna", "value": "ink"}, {"key": "scene", "value": "a"}]


def test_plan_refine_lists_locked_variables() -> None:
    plan = plan_refine(b"img", "style", {"scene": True}, {"scene": "a harbor", "subject": "a boat"})

    assert plan.request["temperature"] == 0.5
    user_text = plan.request["messages"][1]["content"][0]["text"]
    assert '{"key": "scene", "value": "a harbor"}' in user_text
    assert '"subject": "a boat"' in user_text
    assert "1 locked variables" in plan.included


def test_plan_generate_maps_settings() -> None:
    plan = plan_generate("PROMPT", "", GenerationSettings(aspect_ratio="16:9", quality="hd"), model="dall-e-3")

    assert plan.request == {"model": "dall-e-3", "prompt": "PROMPT", "size": "1792x1024", "quality": "hd", "n": 1}
    assert plan.excluded == ()
    assert plan.warnings == ()


def test_plan_generate_reports_unsupported_inputs() -> None:
    plan = plan_generate("PROMPT", "blurry", GenerationSettings(aspect_ratio="21:9", seed="42"))

    assert plan.request["size"] == "1024x1024"
    assert [item.description for item in plan.excluded] == ["seed", "negative_prompt"]
    assert len(plan.warnings) == 1
    assert "21:9" in plan.warnings[0]


# =============================================================================
# parsers
# =============================================================================


def test_parse_analysis(analysis: Analysis) -> None:
    assert parse_analysis(_chat_response(analysis.to_dict())) == analysis


def test_parse_analysis_strips_code_fences(analysis: Analysis) -> None:
    fenced = "```json\n" + json.dumps(analysis.to_dict()) + "\n```"
    assert parse_analysis(_chat_response(fenced)) == analysis


def test_parse_analysis_schema_mismatch_is_malformed(analysis: Analysis) -> None:
    payload = analysis.to_dict()
    payload["variables"] = "nope"
    with pytest.raises(CollaboratorError) as exc_info:
        parse_analysis(_chat_response(payload))
    assert exc_info.value.kind == "malformed"
    assert "variables" in str(exc_info.value)


def test_parse_analysis_invalid_json_is_malformed() -> None:
    with pytest.raises(CollaboratorError) as exc_info:
        parse_analysis(_chat_response("not json"))
    assert exc_info.value.kind == "malformed"


def test_parse_analysis_without_content_is_malformed() -> None:
    with pytest.raises(CollaboratorError, match="No response content"):
        parse_analysis({"choices": []})


def test_parse_refinement() -> None:
    payload = {
        "variables": [
            {"key": "scene", "label": "Scene", "type": "text", "suggestedValue": "a pier", "confidence": 0.5}
        ],
        "prompt_template": "{scene}",
    }
    refinement = parse_refinement(_chat_response(payload))
    assert [variable.key for variable in refinement.variables] == ["scene"]
    assert refinement.prompt_template == "{scene}"


def test_parse_generation_url() -> None:
    artwork = parse_generation({"data": [{"url": "https://img.example/1.png", "revised_prompt": "a fox"}]})
    assert artwork.image_url == "https://img.example/1.png"
    assert artwork.revised_prompt == "a fox"
    assert artwork.image_data is None


def test_parse_generation_b64() -> None:
    encoded = base64.b64encode(b"pixels").decode("ascii")
    artwork = parse_generation({"data": [{"b64_json": encoded}]})
    assert artwork.image_data == b"pixels"
    assert artwork.image_url is None


@pytest.mark.parametrize(
    "response",
    [
        pytest.param({"data": []}, id="empty"),
        pytest.param({}, id="missing"),
        pytest.param({"data": [{"revised_prompt": "x"}]}, id="no-image"),
        pytest.param({"data": [{"b64_json": "***"}]}, id="bad-base64"),
        pytest.param({"data": ["https://img.example/1.png"]}, id="non-mapping-item"),
    ],
)
def test_parse_generation_malformed(response: dict[str, object]) -> None:
    with pytest.raises(CollaboratorError) as exc_info:
        parse_generation(response)
    assert exc_info.value.kind == "malformed"


# =============================================================================
# error translation
# =============================================================================


@pytest.mark.parametrize(
    ("error", "kind"),
    [
        pytest.param(
            openai.RateLimitError("slow down", response=httpx.Response(429, request=_REQUEST), body=None),
            "quota",
            id="rate-limit",
        ),
        pytest.param(openai.APIConnectionError(request=_REQUEST), "unavailable", id="connection"),
        pytest.param(openai.APITimeoutError(request=_REQUEST), "unavailable", id="timeout"),
        pytest.param(
            openai.InternalServerError("boom", response=httpx.Response(500, request=_REQUEST), body=None),
            "failed",
            id="server-error",
        ),
        pytest.param(openai.APIError("odd", _REQUEST, body=None), "failed", id="api-error"),
        pytest.param(openai.OpenAIError("missing api key"), "unavailable", id="client-setup"),
    ],
)
def test_translate_error(error: openai.OpenAIError, kind: str) -> None:
    translated = translate_error(error)
    assert isinstance(translated, CollaboratorError)
    assert translated.kind == kind


# =============================================================================
# OpenAICollaborator
# =============================================================================


def test_collaborator_conforms_to_protocol() -> None:
    assert isinstance(OpenAICollaborator(_client()), StyleCollaborator)


def test_analyze_calls_chat_completions(analysis: Analysis) -> None:
    client = _client(chat=_chat_response(analysis.to_dict()))
    collaborator = OpenAICollaborator(client, analysis_model="gpt-4o-mini")  # type: ignore[arg-type]

    result = collaborator.analyze(b"img", "style", media_type="image/png")

    assert result == analysis
    (call,) = client.chat.completions.create.calls
    assert call["model"] == "gpt-4o-mini"


def test_refine_calls_chat_completions() -> None:
    client = _client(chat=_chat_response({"variables": []}))
    collaborator = OpenAICollaborator(client)  # type: ignore[arg-type]

    refinement = collaborator.refine(b"img", "style", {"subject": True}, {"subject": "fox"})

    assert refinement.variables == ()
    assert len(client.chat.completions.create.calls) == 1


def test_generate_calls_images_api() -> None:
    client = _client(images={"data": [{"url": "https://img.example/1.png"}]})
    collaborator = OpenAICollaborator(client, image_model="gpt-image-1")  # type: ignore[arg-type]

    artwork = collaborator.generate("PROMPT", "", GenerationSettings())

    assert artwork.image_url == "https://img.example/1.png"
    (call,) = client.images.generate.calls
    assert call["model"] == "gpt-image-1"
    assert call["size"] == "1024x1024"


def test_sdk_errors_become_collaborator_errors() -> None:
    error = openai.RateLimitError("quota", response=httpx.Response(429, request=_REQUEST), body=None)
    collaborator = OpenAICollaborator(_client(images=error))  # type: ignore[arg-type]

    with pytest.raises(CollaboratorError) as exc_info:
        collaborator.generate("PROMPT", "", GenerationSettings())
    assert exc_info.value.kind == "quota"
    assert exc_info.value.__cause__ is error


def test_missing_api_key_is_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    collaborator = OpenAICollaborator(api_key=None)

    with pytest.raises(CollaboratorError) as exc_info:
        collaborator.analyze(b"img", "style")
    assert exc_info.value.kind == "unavailable"
