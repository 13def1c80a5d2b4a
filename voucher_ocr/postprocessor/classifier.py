"""
Classifier Module.

Applies the acceptance rules to a parsed extraction and its date
resolution. Pure: no network, no storage.

Rules, in order:
    1. Denomination must be one of the accepted codes, otherwise
       UnrecognizedDenomination (covers the explicit "0").
    2. Dates must be resolved, otherwise UnresolvableDates. A defaulted
       expiry counts as unresolved unless accept_defaulted_expiry is set.
    3. Otherwise the voucher is accepted.
"""

from typing import Iterable, Optional

from config import get_config
from voucher_ocr.utils.logger import get_logger
from .models import (
    Denomination,
    ExtractionOutcome,
    FailureReason,
    FailureRecord,
    RawExtraction,
    VoucherExtraction,
)
from .temporal import Resolution, UndeterminedValidity

# Initialize module logger
logger = get_logger(__name__)


class Classifier:
    """
    Decides the final disposition of an extraction.

    Attributes:
        accepted_denominations: Denominations that may be accepted
        accept_defaulted_expiry: Whether an expiry borrowed from validFrom is acceptable

    Example:
        >>> classifier = Classifier()
        >>> outcome = classifier.classify(raw, resolution, raw_text)
        >>> outcome.success
        True
    """

    def __init__(
        self,
        accepted_denominations: Optional[Iterable[str]] = None,
        accept_defaulted_expiry: Optional[bool] = None
    ) -> None:
        if accepted_denominations is None:
            accepted_denominations = get_config(
                "classification.accepted_denominations", ["5", "10", "20"]
            )
        if accept_defaulted_expiry is None:
            accept_defaulted_expiry = get_config("classification.accept_defaulted_expiry", False)

        self.accepted_denominations = frozenset(
            Denomination.from_code(str(code)) for code in accepted_denominations
        ) - {Denomination.REJECTED}
        self.accept_defaulted_expiry = bool(accept_defaulted_expiry)

    def classify(
        self,
        raw: RawExtraction,
        resolution: Resolution,
        raw_response: str
    ) -> ExtractionOutcome:
        """
        Classify an extraction.

        Args:
            raw: Parsed extraction.
            resolution: Output of the temporal inference engine.
            raw_response: Model text, kept on the outcome for audit.

        Returns:
            VoucherExtraction on success, FailureRecord otherwise.
        """
        if raw.denomination not in self.accepted_denominations:
            logger.info(f"Rejected denomination code {raw.denomination_code!r}")
            return FailureRecord(
                reason=FailureReason.UNRECOGNIZED_DENOMINATION,
                detail=f"Unrecognized denomination: {raw.denomination_code}",
                raw_response=raw_response
            )

        if isinstance(resolution, UndeterminedValidity):
            return FailureRecord(
                reason=FailureReason.UNRESOLVABLE_DATES,
                detail=resolution.detail,
                raw_response=raw_response
            )

        if resolution.expiry_defaulted and not self.accept_defaulted_expiry:
            return FailureRecord(
                reason=FailureReason.UNRESOLVABLE_DATES,
                detail="Expiry date was not extracted",
                raw_response=raw_response
            )

        logger.info(
            f"Accepted €{raw.denomination.value} voucher valid "
            f"{resolution.valid_from.isoformat()} to {resolution.expiry.isoformat()}"
        )
        return VoucherExtraction(
            denomination=raw.denomination,
            validity=resolution,
            raw_response=raw_response,
            barcode=raw.barcode
        )
