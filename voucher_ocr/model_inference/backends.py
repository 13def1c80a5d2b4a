"""
Extraction Backends Module.

Each backend sends one prompt plus one image to a vision model and
returns the model's text together with the decoded response envelope.
Backends are interchangeable; the extraction client only sees the
ExtractionBackend interface.

Backends:
    - GeminiBackend: Google Generative Language API (primary)
    - OpenRouterBackend: OpenAI-compatible chat completions (fallback)
    - ReplayBackend: canned responses keyed by image digest (offline)
"""

import base64
import binascii
import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import requests
import yaml

from config import get_config
from voucher_ocr.utils.logger import get_logger
from voucher_ocr.utils.helpers import image_digest
from voucher_ocr.utils.exceptions import (
    ConfigurationError,
    MalformedResponseError,
    ModelUnavailableError,
    NetworkError,
)

# Initialize module logger
logger = get_logger(__name__)

# Decoding is always greedy; not exposed in settings.yaml or to callers
TEMPERATURE = 0.0


class ExtractionBackend(ABC):
    """
    Interface every extraction backend implements.

    Attributes:
        name: Provider name
        model: Model identifier
        max_output_tokens: Hard ceiling on generated tokens
    """

    name = "base"

    def __init__(self, model: str, max_output_tokens: Optional[int] = None) -> None:
        self.model = model
        self.max_output_tokens = (
            max_output_tokens if max_output_tokens is not None
            else get_config("extraction.max_output_tokens", 256)
        )

    @abstractmethod
    def generate(self, prompt: str, image_b64: str, mime_type: str) -> Tuple[str, Dict[str, Any]]:
        """
        Run one extraction call.

        Args:
            prompt: Instruction text.
            image_b64: Base64-encoded image.
            mime_type: MIME type of the image.

        Returns:
            Tuple of (model text, decoded envelope).

        Raises:
            NetworkError: Transport failure, timeout or non-2xx status.
            ModelUnavailableError: The provider refused to produce a candidate.
            MalformedResponseError: The envelope lacks the expected text.
        """

    def describe(self) -> str:
        return f"{self.name}/{self.model}"


class HTTPBackend(ExtractionBackend):
    """
    Shared plumbing for backends reached over HTTP with requests.

    Attributes:
        endpoint: Base URL of the provider API
        api_key: Service credential
        timeout: Per-call timeout in seconds
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        session: Optional[requests.Session] = None
    ) -> None:
        section = f"extraction.providers.{self.name}"
        super().__init__(
            model=model or get_config(f"{section}.model"),
            max_output_tokens=max_output_tokens
        )
        self.endpoint = (endpoint or get_config(f"{section}.endpoint", "")).rstrip('/')
        self.timeout = timeout if timeout is not None else get_config(f"{section}.timeout", 30)
        self.api_key = self._resolve_api_key(api_key, section)
        self.session = session

        if not self.model:
            raise ConfigurationError(f"{section}.model", "model not configured")
        if not self.endpoint:
            raise ConfigurationError(f"{section}.endpoint", "endpoint not configured")

        logger.debug(f"{self.name} backend ready (model={self.model}, timeout={self.timeout}s)")

    def _resolve_api_key(self, api_key: Optional[str], section: str) -> str:
        """Explicit argument, then settings, then the configured environment variable."""
        if api_key:
            return api_key

        configured = get_config(f"{section}.api_key")
        if configured:
            return configured

        env_name = get_config(f"{section}.api_key_env")
        if env_name and os.environ.get(env_name):
            return os.environ[env_name]

        raise ConfigurationError(
            f"{section}.api_key",
            f"{self.name} API key not configured (set {env_name or 'api_key'})"
        )

    def _post(self, url: str, body: Dict[str, Any], headers: Dict[str, str],
              params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """POST a JSON body and return the decoded JSON envelope."""
        poster = self.session.post if self.session is not None else requests.post

        try:
            response = poster(url, json=body, headers=headers, params=params, timeout=self.timeout)
        except requests.Timeout:
            raise NetworkError(self.name, f"timed out after {self.timeout}s")
        except requests.RequestException as e:
            raise NetworkError(self.name, str(e))

        if not 200 <= response.status_code < 300:
            raise NetworkError(
                self.name,
                reason=response.text[:500],
                status_code=response.status_code,
                raw_response=response.text
            )

        try:
            envelope = response.json()
        except ValueError:
            raise MalformedResponseError("response body is not JSON", raw_response=response.text)

        if not isinstance(envelope, dict):
            raise MalformedResponseError("response body is not a JSON object", raw_response=response.text)
        return envelope


class GeminiBackend(HTTPBackend):
    """
    Google Generative Language API backend.

    Example:
        >>> backend = GeminiBackend(api_key="...")
        >>> text, envelope = backend.generate(prompt, image_b64, "image/jpeg")
    """

    name = "gemini"

    def build_request(self, prompt: str, image_b64: str, mime_type: str) -> Dict[str, Any]:
        return {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {"inlineData": {"mimeType": mime_type, "data": image_b64}},
                    ]
                }
            ],
            "generationConfig": {
                "temperature": TEMPERATURE,
                "maxOutputTokens": self.max_output_tokens,
                "responseMimeType": "application/json",
            },
        }

    def generate(self, prompt: str, image_b64: str, mime_type: str) -> Tuple[str, Dict[str, Any]]:
        envelope = self._post(
            f"{self.endpoint}/models/{self.model}:generateContent",
            body=self.build_request(prompt, image_b64, mime_type),
            headers={"Content-Type": "application/json"},
            params={"key": self.api_key}
        )
        return self._unwrap(envelope), envelope

    def _unwrap(self, envelope: Dict[str, Any]) -> str:
        """Return candidates[0].content.parts[0].text."""
        candidates = envelope.get("candidates") or []
        block_reason = (envelope.get("promptFeedback") or {}).get("blockReason")

        if not candidates and block_reason:
            raise ModelUnavailableError(
                self.name, self.model,
                reason=f"prompt blocked: {block_reason}",
                raw_response=json.dumps(envelope)
            )

        try:
            text = candidates[0]["content"]["parts"][0]["text"]
        except (IndexError, KeyError, TypeError):
            raise MalformedResponseError("no text in Gemini response", raw_response=json.dumps(envelope))

        if not isinstance(text, str) or not text:
            raise MalformedResponseError("no text in Gemini response", raw_response=json.dumps(envelope))
        return text


class OpenRouterBackend(HTTPBackend):
    """
    OpenRouter chat-completions backend, used as the fallback provider.

    The image travels as a data URI inside an image_url content part.
    """

    name = "openrouter"

    def build_request(self, prompt: str, image_b64: str, mime_type: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{image_b64}"}},
                    ],
                }
            ],
            "temperature": TEMPERATURE,
            "max_tokens": self.max_output_tokens,
            "response_format": {"type": "json_object"},
        }

    def generate(self, prompt: str, image_b64: str, mime_type: str) -> Tuple[str, Dict[str, Any]]:
        envelope = self._post(
            f"{self.endpoint}/chat/completions",
            body=self.build_request(prompt, image_b64, mime_type),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            }
        )
        return self._unwrap(envelope), envelope

    def _unwrap(self, envelope: Dict[str, Any]) -> str:
        """Return choices[0].message.content, joining text parts if it is a list."""
        if envelope.get("error") and not envelope.get("choices"):
            error = envelope["error"]
            reason = error.get("message") if isinstance(error, dict) else str(error)
            raise ModelUnavailableError(self.name, self.model, reason=reason, raw_response=json.dumps(envelope))

        try:
            content = envelope["choices"][0]["message"]["content"]
        except (IndexError, KeyError, TypeError):
            raise MalformedResponseError("no text in OpenRouter response", raw_response=json.dumps(envelope))

        if isinstance(content, list):
            content = "".join(
                part.get("text", "") for part in content
                if isinstance(part, dict) and part.get("type") == "text"
            )

        if not isinstance(content, str) or not content:
            raise MalformedResponseError("no text in OpenRouter response", raw_response=json.dumps(envelope))
        return content


class ReplayBackend(ExtractionBackend):
    """
    Offline backend answering from recorded model responses.

    Responses are keyed by the SHA-256 digest of the image bytes, so the
    same sample image always yields the same text whatever the prompt.

    Example:
        >>> backend = ReplayBackend()
        >>> backend.add(image_bytes, '{"type": "10", ...}')
    """

    name = "replay"

    def __init__(self, responses: Optional[Dict[str, str]] = None, model: str = "recorded") -> None:
        super().__init__(model=model)
        self.responses: Dict[str, str] = dict(responses or {})
        self.calls = 0

    def add(self, image_bytes: bytes, response: Union[str, Dict[str, Any]]) -> None:
        """Register the response to return for these image bytes."""
        if not isinstance(response, str):
            response = json.dumps(response)
        self.responses[image_digest(image_bytes)] = response

    @classmethod
    def from_file(cls, path: Union[str, Path], images_dir: Union[str, Path]) -> 'ReplayBackend':
        """
        Load recorded responses from a YAML or JSON file mapping image
        filenames (relative to images_dir) to response text or objects.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError("replay", f"replay file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            recorded = yaml.safe_load(f) or {}

        backend = cls()
        for filename, response in recorded.items():
            image_path = Path(images_dir) / filename
            if not image_path.exists():
                logger.warning(f"Replay entry without image: {image_path}")
                continue
            backend.add(image_path.read_bytes(), response)

        logger.info(f"Loaded {len(backend.responses)} recorded responses from {path.name}")
        return backend

    def generate(self, prompt: str, image_b64: str, mime_type: str) -> Tuple[str, Dict[str, Any]]:
        self.calls += 1
        try:
            digest = image_digest(base64.b64decode(image_b64, validate=True))
        except (binascii.Error, ValueError):
            raise MalformedResponseError("image payload is not valid base64")

        if digest not in self.responses:
            raise MalformedResponseError(f"no recorded response for image {digest[:12]}")

        text = self.responses[digest]
        return text, {"replay": True, "digest": digest, "text": text}


BACKENDS = {
    GeminiBackend.name: GeminiBackend,
    OpenRouterBackend.name: OpenRouterBackend,
}


def create_backend(provider: Optional[str] = None, **kwargs) -> ExtractionBackend:
    """
    Build a backend from configuration.

    Args:
        provider: Provider name; defaults to extraction.provider.
        **kwargs: Overrides passed to the backend constructor
                 (api_key, endpoint, model, timeout, ...).

    Raises:
        ConfigurationError: Unknown provider or missing credential.
    """
    provider = provider or get_config("extraction.provider", GeminiBackend.name)

    if provider not in BACKENDS:
        raise ConfigurationError(
            "extraction.provider",
            f"unknown provider '{provider}' (expected one of {sorted(BACKENDS)})"
        )
    return BACKENDS[provider](**kwargs)


def create_fallback_backend(**kwargs) -> ExtractionBackend:
    """Build the configured fallback provider."""
    return create_backend(get_config("extraction.fallback_provider", OpenRouterBackend.name), **kwargs)
