"""
Voucher Extraction Pipeline.

Runs one voucher image through every stage:

    ImageLoader -> ExtractionClient -> FieldParser
                -> TemporalInferenceEngine -> Classifier

This is the single place where extraction-time exceptions become
FailureRecords. ConfigurationError is never caught here.

Usage:
    pipeline = VoucherPipeline()
    outcome = pipeline.extract_from_url("https://example.com/voucher.jpg")
    if outcome.success:
        print(outcome.validity.valid_from, outcome.validity.expiry)
    else:
        print(outcome.reason, outcome.detail)
"""

from datetime import date
from typing import Optional, Union

from voucher_ocr.utils.logger import get_logger
from voucher_ocr.utils.helpers import parse_date
from voucher_ocr.utils.exceptions import (
    CorruptedImageError,
    ImageFetchError,
    MalformedResponseError,
    ModelUnavailableError,
    NetworkError,
)
from voucher_ocr.input_handler import ImageLoader, ImagePayload
from voucher_ocr.model_inference import ExtractionClient
from voucher_ocr.postprocessor import (
    Classifier,
    ExtractionOutcome,
    FailureReason,
    FailureRecord,
    FieldParser,
    ObservationContext,
    TemporalInferenceEngine,
)

# Initialize module logger
logger = get_logger(__name__)

DateLike = Union[date, str]


class VoucherPipeline:
    """
    End-to-end voucher extraction.

    Stateless across invocations: one pipeline may serve concurrent
    calls for different images.

    Attributes:
        client: ExtractionClient (owns the backend strategy)
        image_loader: ImageLoader for storage/URL/base64 sources
        parser: FieldParser
        engine: TemporalInferenceEngine
        classifier: Classifier
    """

    def __init__(
        self,
        client: Optional[ExtractionClient] = None,
        image_loader: Optional[ImageLoader] = None,
        parser: Optional[FieldParser] = None,
        engine: Optional[TemporalInferenceEngine] = None,
        classifier: Optional[Classifier] = None
    ) -> None:
        self.client = client if client is not None else ExtractionClient()
        self.image_loader = image_loader if image_loader is not None else ImageLoader()
        self.parser = parser or FieldParser()
        self.engine = engine or TemporalInferenceEngine()
        self.classifier = classifier or Classifier()

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def extract_from_storage(self, ref: str, observation_date: Optional[DateLike] = None) -> ExtractionOutcome:
        """Extract a voucher stored in the image store under ref."""
        return self._run_loaded(lambda: self.image_loader.load_storage(ref), observation_date)

    def extract_from_url(self, url: str, observation_date: Optional[DateLike] = None) -> ExtractionOutcome:
        """Extract a voucher from an image URL."""
        return self._run_loaded(lambda: self.image_loader.load_url(url), observation_date)

    def extract_from_base64(self, image_b64: str, observation_date: DateLike) -> ExtractionOutcome:
        """
        Extract a voucher from base64 image data as if it had been submitted
        on observation_date.
        """
        return self._run_loaded(lambda: self.image_loader.load_base64(image_b64), observation_date)

    # -------------------------------------------------------------------------
    # Core
    # -------------------------------------------------------------------------

    def process(self, image_b64: str, context: ObservationContext) -> ExtractionOutcome:
        """
        Run extraction, parsing, inference and classification.

        Args:
            image_b64: Base64-encoded JPEG.
            context: Observation context.

        Returns:
            VoucherExtraction or FailureRecord.
        """
        try:
            response = self.client.extract(image_b64, context.observation_date)
        except NetworkError as e:
            return self._fail(FailureReason.NETWORK_ERROR, str(e), e.raw_response)
        except ModelUnavailableError as e:
            return self._fail(FailureReason.MODEL_UNAVAILABLE, str(e), e.raw_response)
        except MalformedResponseError as e:
            return self._fail(FailureReason.MALFORMED_RESPONSE, str(e), e.raw_response)

        try:
            raw = self.parser.parse(response.text)
        except MalformedResponseError as e:
            return self._fail(FailureReason.MALFORMED_RESPONSE, str(e), response.text)

        resolution = self.engine.resolve(raw, context)
        outcome = self.classifier.classify(raw, resolution, response.text)

        if not outcome.success:
            logger.warning(f"Voucher rejected: {outcome.reason.value} ({outcome.detail})")
        return outcome

    def _run_loaded(self, load, observation_date: Optional[DateLike]) -> ExtractionOutcome:
        context = self._context(observation_date)

        try:
            payload: ImagePayload = load()
        except ImageFetchError as e:
            return self._fail(FailureReason.NETWORK_ERROR, str(e))
        except CorruptedImageError as e:
            # No service call was made; the reason is shared with bad model output
            return self._fail(FailureReason.MALFORMED_RESPONSE, f"Input image rejected before extraction: {e}")

        logger.info(
            f"Processing {payload!r} observed {context.observation_date.isoformat()}"
        )
        return self.process(payload.image_b64, context)

    @staticmethod
    def _context(observation_date: Optional[DateLike]) -> ObservationContext:
        if observation_date is None:
            return ObservationContext.today()
        return ObservationContext(parse_date(observation_date))

    @staticmethod
    def _fail(reason: FailureReason, detail: str, raw_response: Optional[str] = None) -> FailureRecord:
        logger.warning(f"Extraction failed: {reason.value} ({detail})")
        return FailureRecord(reason=reason, detail=detail, raw_response=raw_response)
