"""
Extraction Client Module.

Sends one voucher image and the year-parameterised prompt to the
configured extraction backend and returns the raw answer. Exactly one
backend call is made per invocation; retries are left to the caller.

Author: Voucher OCR Team
"""

import time
from datetime import date
from typing import Optional

from config import get_config
from voucher_ocr.utils.logger import get_logger
from .backends import ExtractionBackend, create_backend
from .extraction_result import ExtractionResponse
from .prompt import build_prompt

# Initialize module logger
logger = get_logger(__name__)


class ExtractionClient:
    """
    Vision extraction client.

    The backend is a strategy: pass GeminiBackend, OpenRouterBackend or a
    ReplayBackend to choose where the image goes.

    Attributes:
        backend: ExtractionBackend used for every call
        mime_type: MIME type declared for the inline image

    Example:
        >>> client = ExtractionClient()
        >>> response = client.extract(image_b64, date(2025, 12, 22))
        >>> print(response.text)
    """

    def __init__(self, backend: Optional[ExtractionBackend] = None, mime_type: Optional[str] = None) -> None:
        """
        Initialize the extraction client.

        Args:
            backend: Extraction backend. If None, built from configuration
                    (raises ConfigurationError when the credential is missing).
            mime_type: MIME type of submitted images.
        """
        self.backend = backend if backend is not None else create_backend()
        self.mime_type = mime_type or get_config("extraction.mime_type", "image/jpeg")

        logger.info(f"ExtractionClient initialized with backend: {self.backend.describe()}")

    def extract(self, image_b64: str, observation_date: date) -> ExtractionResponse:
        """
        Run the extraction call for one image.

        Args:
            image_b64: Base64-encoded JPEG.
            observation_date: Date the image was submitted; its year goes into the prompt.

        Returns:
            ExtractionResponse with the model text and envelope.

        Raises:
            NetworkError, ModelUnavailableError, MalformedResponseError
        """
        prompt = build_prompt(observation_date.year)
        start_time = time.time()

        logger.debug(
            f"Calling {self.backend.describe()} (observation year {observation_date.year}, "
            f"{len(image_b64)} base64 chars)"
        )
        text, envelope = self.backend.generate(prompt, image_b64, self.mime_type)

        response = ExtractionResponse(
            text=text,
            envelope=envelope,
            provider=self.backend.name,
            model=self.backend.model,
            observation_year=observation_date.year,
            processing_time=time.time() - start_time
        )

        logger.debug(f"Raw model text: {text}")
        logger.info(f"Extraction call complete: {response!r}")
        return response
