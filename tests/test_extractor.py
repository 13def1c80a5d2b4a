from datetime import date
from unittest import mock

import pytest

from voucher_ocr.model_inference import ExtractionClient, GeminiBackend
from voucher_ocr.utils.exceptions import ConfigurationError, NetworkError


@pytest.fixture()
def fake_backend():
    backend = mock.MagicMock()
    backend.name = "fake"
    backend.model = "fake-model"
    backend.describe.return_value = "fake/fake-model"
    backend.generate.return_value = ('{"type": "10"}', {"candidates": []})
    return backend


class TestExtractionClient:

    def test_single_call_with_year_prompt(self, fake_backend):
        client = ExtractionClient(fake_backend)

        response = client.extract("aW1hZ2U=", date(2025, 1, 2))

        fake_backend.generate.assert_called_once()
        prompt, image_b64, mime_type = fake_backend.generate.call_args.args
        assert "The current year is 2025." in prompt
        assert image_b64 == "aW1hZ2U="
        assert mime_type == "image/jpeg"

        assert response.text == '{"type": "10"}'
        assert response.provider == "fake"
        assert response.model == "fake-model"
        assert response.observation_year == 2025
        assert response.raw_envelope == '{"candidates": []}'

    def test_errors_propagate_without_retry(self, fake_backend):
        fake_backend.generate.side_effect = NetworkError("fake", "down")

        with pytest.raises(NetworkError):
            ExtractionClient(fake_backend).extract("aW1hZ2U=", date(2025, 1, 2))
        assert fake_backend.generate.call_count == 1

    def test_default_backend_from_configuration(self, api_keys):
        assert isinstance(ExtractionClient().backend, GeminiBackend)

    def test_default_backend_without_credential(self):
        with pytest.raises(ConfigurationError):
            ExtractionClient()
