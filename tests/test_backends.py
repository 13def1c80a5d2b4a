import base64
from unittest import mock

import pytest
import requests

from voucher_ocr.model_inference import (
    GeminiBackend,
    OpenRouterBackend,
    ReplayBackend,
    create_backend,
    create_fallback_backend,
)
from voucher_ocr.utils.exceptions import (
    ConfigurationError,
    MalformedResponseError,
    ModelUnavailableError,
    NetworkError,
)

MODEL_TEXT = '{"type": "10", "validFromDay": 30, "validFromMonth": 12, "expiryDay": 5, "expiryMonth": 1}'


def http_response(payload=None, status_code=200, text=None):
    response = mock.MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = text if text is not None else str(payload)
    return response


def gemini_envelope(text=MODEL_TEXT):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def openrouter_envelope(content=MODEL_TEXT):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.mark.usefixtures("api_keys")
class TestGeminiBackend:

    @mock.patch("voucher_ocr.model_inference.backends.requests.post")
    def test_request_shape(self, mock_post):
        mock_post.return_value = http_response(gemini_envelope())
        backend = GeminiBackend()

        text, envelope = backend.generate("PROMPT", "aW1hZ2U=", "image/jpeg")

        assert text == MODEL_TEXT
        assert envelope == gemini_envelope()

        args, kwargs = mock_post.call_args
        assert args[0] == (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            "gemini-2.0-flash-lite-preview-02-05:generateContent"
        )
        assert kwargs["params"] == {"key": "test-google-key"}
        assert kwargs["timeout"] == 30

        body = kwargs["json"]
        assert body["contents"][0]["parts"] == [
            {"text": "PROMPT"},
            {"inlineData": {"mimeType": "image/jpeg", "data": "aW1hZ2U="}},
        ]
        assert body["generationConfig"] == {
            "temperature": 0.0,
            "maxOutputTokens": 256,
            "responseMimeType": "application/json",
        }

    @mock.patch("voucher_ocr.model_inference.backends.requests.post")
    def test_temperature_ignores_settings_override(self, mock_post, monkeypatch):
        monkeypatch.setenv("VOUCHER_OCR__EXTRACTION__TEMPERATURE", "0.9")
        mock_post.return_value = http_response(gemini_envelope())

        GeminiBackend().generate("PROMPT", "aW1hZ2U=", "image/jpeg")

        _, kwargs = mock_post.call_args
        assert kwargs["json"]["generationConfig"]["temperature"] == 0.0
        assert OpenRouterBackend().build_request("PROMPT", "aW1hZ2U=", "image/jpeg")["temperature"] == 0.0

    def test_explicit_arguments_override_settings(self):
        backend = GeminiBackend(api_key="explicit", model="gemini-other", timeout=5)
        assert backend.api_key == "explicit"
        assert backend.describe() == "gemini/gemini-other"
        assert backend.timeout == 5

    def test_session_is_used_when_given(self):
        session = mock.MagicMock(spec=requests.Session)
        session.post.return_value = http_response(gemini_envelope())

        GeminiBackend(session=session).generate("PROMPT", "aW1hZ2U=", "image/jpeg")

        session.post.assert_called_once()

    @pytest.mark.parametrize("status_code", [400, 404, 429, 500, 503])
    @mock.patch("voucher_ocr.model_inference.backends.requests.post")
    def test_non_success_status_is_network_error(self, mock_post, status_code):
        mock_post.return_value = http_response({"error": {}}, status_code=status_code, text="boom")

        with pytest.raises(NetworkError) as exc_info:
            GeminiBackend().generate("PROMPT", "aW1hZ2U=", "image/jpeg")

        assert exc_info.value.details["status_code"] == status_code
        assert exc_info.value.raw_response == "boom"

    @pytest.mark.parametrize("error", [requests.Timeout("slow"), requests.ConnectionError("down")])
    @mock.patch("voucher_ocr.model_inference.backends.requests.post")
    def test_transport_failures_are_network_errors(self, mock_post, error):
        mock_post.side_effect = error

        with pytest.raises(NetworkError):
            GeminiBackend().generate("PROMPT", "aW1hZ2U=", "image/jpeg")

    @mock.patch("voucher_ocr.model_inference.backends.requests.post")
    def test_blocked_prompt_is_model_unavailable(self, mock_post):
        mock_post.return_value = http_response({"promptFeedback": {"blockReason": "SAFETY"}})

        with pytest.raises(ModelUnavailableError) as exc_info:
            GeminiBackend().generate("PROMPT", "aW1hZ2U=", "image/jpeg")
        assert "SAFETY" in exc_info.value.details["reason"]

    @pytest.mark.parametrize("envelope", [
        {},
        {"candidates": []},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"finishReason": "MAX_TOKENS"}]},
        gemini_envelope(text=""),
    ])
    @mock.patch("voucher_ocr.model_inference.backends.requests.post")
    def test_missing_text_is_malformed(self, mock_post, envelope):
        mock_post.return_value = http_response(envelope)

        with pytest.raises(MalformedResponseError):
            GeminiBackend().generate("PROMPT", "aW1hZ2U=", "image/jpeg")

    @mock.patch("voucher_ocr.model_inference.backends.requests.post")
    def test_non_json_body_is_malformed(self, mock_post):
        response = http_response(text="<html>oops</html>")
        response.json.side_effect = ValueError("not json")
        mock_post.return_value = response

        with pytest.raises(MalformedResponseError) as exc_info:
            GeminiBackend().generate("PROMPT", "aW1hZ2U=", "image/jpeg")
        assert exc_info.value.raw_response == "<html>oops</html>"


class TestCredentials:

    def test_missing_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            GeminiBackend()
        assert "GOOGLE_GENERATIVE_AI_API_KEY" in str(exc_info.value)

    def test_fallback_missing_key(self):
        with pytest.raises(ConfigurationError):
            create_fallback_backend()

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "from-env")
        assert OpenRouterBackend().api_key == "from-env"


@pytest.mark.usefixtures("api_keys")
class TestOpenRouterBackend:

    @mock.patch("voucher_ocr.model_inference.backends.requests.post")
    def test_request_shape(self, mock_post):
        mock_post.return_value = http_response(openrouter_envelope())

        text, _ = OpenRouterBackend().generate("PROMPT", "aW1hZ2U=", "image/jpeg")

        assert text == MODEL_TEXT
        args, kwargs = mock_post.call_args
        assert args[0] == "https://openrouter.ai/api/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer test-openrouter-key"

        body = kwargs["json"]
        assert body["model"] == "google/gemini-2.0-flash-001"
        assert body["temperature"] == 0.0
        assert body["max_tokens"] == 256
        assert body["response_format"] == {"type": "json_object"}
        assert body["messages"][0]["content"] == [
            {"type": "text", "text": "PROMPT"},
            {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,aW1hZ2U="}},
        ]

    @mock.patch("voucher_ocr.model_inference.backends.requests.post")
    def test_content_parts_are_joined(self, mock_post):
        mock_post.return_value = http_response(openrouter_envelope(
            [{"type": "text", "text": '{"type": '}, {"type": "text", "text": '"5"}'}]
        ))

        text, _ = OpenRouterBackend().generate("PROMPT", "aW1hZ2U=", "image/jpeg")
        assert text == '{"type": "5"}'

    @mock.patch("voucher_ocr.model_inference.backends.requests.post")
    def test_error_envelope_is_model_unavailable(self, mock_post):
        mock_post.return_value = http_response({"error": {"message": "No endpoints found", "code": 404}})

        with pytest.raises(ModelUnavailableError):
            OpenRouterBackend().generate("PROMPT", "aW1hZ2U=", "image/jpeg")

    @mock.patch("voucher_ocr.model_inference.backends.requests.post")
    def test_empty_choices_is_malformed(self, mock_post):
        mock_post.return_value = http_response({"choices": []})

        with pytest.raises(MalformedResponseError):
            OpenRouterBackend().generate("PROMPT", "aW1hZ2U=", "image/jpeg")


@pytest.mark.usefixtures("api_keys")
class TestBackendFactory:

    def test_default_provider(self):
        assert isinstance(create_backend(), GeminiBackend)

    def test_fallback_provider(self):
        assert isinstance(create_fallback_backend(), OpenRouterBackend)

    def test_named_provider_with_overrides(self):
        backend = create_backend("openrouter", model="anthropic/other")
        assert backend.describe() == "openrouter/anthropic/other"

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            create_backend("tesseract")


class TestReplayBackend:

    def test_answers_by_image_digest(self, replay_backend, jpeg_bytes, jpeg_b64):
        replay_backend.add(jpeg_bytes, {"type": "5"})

        text, envelope = replay_backend.generate("any prompt", jpeg_b64, "image/jpeg")

        assert text == '{"type": "5"}'
        assert envelope["replay"] is True
        assert replay_backend.calls == 1

    def test_unknown_image_is_malformed(self, replay_backend, jpeg_b64):
        with pytest.raises(MalformedResponseError):
            replay_backend.generate("prompt", jpeg_b64, "image/jpeg")

    def test_invalid_base64_is_malformed(self, replay_backend):
        with pytest.raises(MalformedResponseError):
            replay_backend.generate("prompt", "not base64!!", "image/jpeg")

    def test_from_file(self, tmp_path, jpeg_bytes):
        (tmp_path / "feb11-feb17.jpg").write_bytes(jpeg_bytes)
        recorded = tmp_path / "recorded.yaml"
        recorded.write_text(
            "feb11-feb17.jpg: '{\"type\": \"20\"}'\n"
            "missing.jpg: '{\"type\": \"5\"}'\n",
            encoding="utf-8"
        )

        backend = ReplayBackend.from_file(recorded, tmp_path)
        text, _ = backend.generate("prompt", base64.b64encode(jpeg_bytes).decode("ascii"), "image/jpeg")

        assert len(backend.responses) == 1
        assert text == '{"type": "20"}'

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ReplayBackend.from_file(tmp_path / "absent.yaml", tmp_path)
