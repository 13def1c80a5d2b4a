"""
Evaluation Harness Module.

Runs the full extraction pipeline over the sample corpus, once per
(image, observation date) case, and compares the resolved validity
with the expected one field by field.

Images come from, in order of preference:
    1. entries passed to run(): {"filename", "imageBase64"} or
       {"filename", "imageUrl"}
    2. the local test image directory (paths.test_images)
    3. the configured base URL (evaluation.image_base_url)

Image retrieval and per-image pipeline runs are both spread over a
thread pool bounded by the corpus size.
"""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from config import get_config
from voucher_ocr.utils.logger import get_logger
from voucher_ocr.utils.exceptions import ConfigurationError, InputError
from voucher_ocr.input_handler import ImageLoader, ImagePayload
from voucher_ocr.model_inference import (
    ExtractionBackend,
    ExtractionClient,
    create_backend,
    create_fallback_backend,
)
from voucher_ocr.postprocessor import ObservationContext
from voucher_ocr.pipeline import VoucherPipeline
from .corpus import Corpus, EvalCase, SampleImage, default_corpus
from .report import EvalReport, EvalResult

# Initialize module logger
logger = get_logger(__name__)

ImageInput = Dict[str, str]
Fetched = Union[ImagePayload, str]


class EvaluationHarness:
    """
    Regression oracle for the extraction pipeline.

    The comparison logic does not depend on the backend: pass a backend
    (or use_fallback=True) to evaluate a different provider, or a
    ReplayBackend for a fully offline run.

    Attributes:
        pipeline: VoucherPipeline under test
        corpus: Sample images and their cases
        images_dir: Local directory holding the sample images
        image_base_url: Base URL the sample images are served from
        max_workers: Upper bound on thread pool size

    Example:
        >>> harness = EvaluationHarness(use_fallback=True)
        >>> report = harness.run()
        >>> print(f"{report.passed}/{report.total}")
    """

    def __init__(
        self,
        pipeline: Optional[VoucherPipeline] = None,
        backend: Optional[ExtractionBackend] = None,
        use_fallback: bool = False,
        corpus: Optional[Corpus] = None,
        images_dir: Optional[Union[str, Path]] = None,
        image_base_url: Optional[str] = None,
        max_workers: Optional[int] = None
    ) -> None:
        if pipeline is None:
            if backend is None:
                backend = create_fallback_backend() if use_fallback else create_backend()
            pipeline = VoucherPipeline(client=ExtractionClient(backend))

        self.pipeline = pipeline
        self.corpus = corpus or default_corpus()
        self.images_dir = Path(images_dir or get_config("paths.test_images", "data/test-images"))
        self.image_base_url = (image_base_url or get_config("evaluation.image_base_url", "")).rstrip('/')
        self.max_workers = max_workers or get_config("evaluation.max_workers", 8)
        self.loader: ImageLoader = pipeline.image_loader

        logger.info(
            f"EvaluationHarness ready: {len(self.corpus)} images, "
            f"{len(self.corpus.cases)} cases, backend {self.provider}"
        )

    @property
    def provider(self) -> str:
        return self.pipeline.client.backend.describe()

    def run(self, images: Optional[List[ImageInput]] = None) -> EvalReport:
        """
        Evaluate the corpus.

        Args:
            images: Optional explicit image inputs. Defaults to every
                   corpus image from the local directory or base URL.

        Returns:
            EvalReport aggregating every case.
        """
        inputs = images if images else self._default_inputs()
        logger.info(f"Running evaluation over {len(inputs)} images")

        fetched = self._map(self._fetch, inputs)
        per_image = self._map(lambda item: self._evaluate_image(*item), fetched)

        report = EvalReport(
            results=[result for results in per_image for result in results],
            provider=self.provider
        )
        self._log_summary(report)
        return report

    def run_single(self, filename: str, image_b64: str) -> EvalReport:
        """Evaluate one image against all of its cases."""
        return self.run([{'filename': filename, 'imageBase64': image_b64}])

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _map(self, func, items: List[Any]) -> List[Any]:
        """Apply func over items on a bounded thread pool, preserving order."""
        if not items:
            return []
        workers = max(1, min(len(items), self.max_workers))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="voucher-eval") as pool:
            return list(pool.map(func, items))

    def _default_inputs(self) -> List[ImageInput]:
        inputs = []
        for filename in self.corpus.filenames:
            local = self.images_dir / filename
            if local.is_file():
                inputs.append({'filename': filename, 'path': str(local)})
            elif self.image_base_url:
                inputs.append({'filename': filename, 'imageUrl': f"{self.image_base_url}/{filename}"})
            else:
                inputs.append({'filename': filename})
        return inputs

    def _fetch(self, image: ImageInput) -> Tuple[str, Optional[SampleImage], Optional[Fetched]]:
        """Retrieve one image; failures are returned as an error string."""
        filename = image.get('filename', '')
        sample = self.corpus.get(filename)
        if sample is None:
            return filename, None, None

        try:
            if image.get('imageBase64'):
                payload = self.loader.load_base64(image['imageBase64'], filename)
            elif image.get('imageUrl'):
                payload = self.loader.load_url(image['imageUrl'])
            elif image.get('path'):
                payload = self.loader.load_file(image['path'])
            else:
                return filename, sample, "No image data provided"
        except InputError as e:
            logger.warning(f"Could not load {filename}: {e}")
            return filename, sample, str(e)

        return filename, sample, payload

    def _evaluate_image(
        self,
        filename: str,
        sample: Optional[SampleImage],
        fetched: Optional[Fetched]
    ) -> List[EvalResult]:
        if sample is None:
            logger.warning(f"Unknown image filename: {filename}")
            return [EvalResult(filename=filename, case=None, success=False, error="Unknown image filename")]

        if isinstance(fetched, str):
            return [
                EvalResult(filename=filename, case=case, success=False, error=fetched)
                for case in sample.cases
            ]

        return [self._evaluate_case(filename, case, fetched) for case in sample.cases]

    def _evaluate_case(self, filename: str, case: EvalCase, payload: ImagePayload) -> EvalResult:
        """Run one case; anything but a configuration error becomes a failed result."""
        try:
            outcome = self.pipeline.process(payload.image_b64, ObservationContext(case.observation_date))
        except ConfigurationError:
            raise
        except Exception as e:
            logger.exception(f"Case {filename} ({case.label}) raised")
            return EvalResult(filename=filename, case=case, success=False, error=f"{type(e).__name__}: {e}")

        if not outcome.success:
            return EvalResult(
                filename=filename,
                case=case,
                success=False,
                error=f"{outcome.reason.value}: {outcome.detail}"
            )

        actual = outcome.validity
        success = actual == case.expected_validity
        logger.debug(
            f"[OCR Eval] {filename} | testDate: {case.label} | "
            f"{'PASS' if success else 'FAIL'} | raw: {outcome.raw_response}"
        )
        return EvalResult(filename=filename, case=case, success=success, actual_validity=actual)

    def _log_summary(self, report: EvalReport) -> None:
        if report.total == 0:
            logger.warning("Evaluation ran no cases")
        for result in report.results:
            if not result.success:
                logger.warning(
                    f"FAIL {result.filename} ({result.test_date}): "
                    f"{result.error or 'validity mismatch'}"
                )
        logger.info(f"Evaluation complete: {report.passed}/{report.total} passed")
