"""
Temporal Inference Module.

Vouchers usually print only day/month fragments ("Valid 30 Dec - 5 Jan").
This module works out the years those fragments belong to and renders
the concrete validity window.

Year resolution:
    1. Year printed on the voucher (explicitExpiryYear):
           expiryYear    = explicitExpiryYear
           validFromYear = explicitExpiryYear - 1 if the window crosses
                           new year, else explicitExpiryYear
       The observation date is ignored.
    2. No printed year, window crosses new year (expiryMonth < validFromMonth):
           validFromYear = observationYear - 1 if validFromMonth > observationMonth,
                           else observationYear
           expiryYear    = validFromYear + 1
    3. No printed year, no crossing:
           validFromYear = expiryYear = observationYear

A window crosses new year when the expiry month comes before the start
month. If either month is unknown the window is treated as not crossing.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple, Union

from voucher_ocr.utils.logger import get_logger
from .models import ObservationContext, RawExtraction, ResolvedValidity

# Initialize module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class UndeterminedValidity:
    """The fragments needed to resolve the window were not extracted or are not real dates."""
    detail: str


Resolution = Union[ResolvedValidity, UndeterminedValidity]


def crosses_year_boundary(valid_from_month: Optional[int], expiry_month: Optional[int]) -> bool:
    """
    Whether the validity window runs from one calendar year into the next.

    Example:
        >>> crosses_year_boundary(12, 1)
        True
        >>> crosses_year_boundary(2, 2)
        False
        >>> crosses_year_boundary(12, None)
        False
    """
    if valid_from_month is None or expiry_month is None:
        return False
    return expiry_month < valid_from_month


def resolve_years(
    valid_from_month: Optional[int],
    expiry_month: Optional[int],
    observation_year: int,
    observation_month: int,
    explicit_expiry_year: Optional[int] = None
) -> Tuple[int, int]:
    """
    Resolve the years implied by the validFrom and expiry fragments.

    Args:
        valid_from_month: Start month (1-12), or None if unknown.
        expiry_month: End month (1-12), or None if unknown.
        observation_year: Year the image was submitted.
        observation_month: Month the image was submitted.
        explicit_expiry_year: Year printed on the voucher, if any.

    Returns:
        Tuple of (valid_from_year, expiry_year).

    Example:
        >>> resolve_years(12, 1, 2025, 1)
        (2024, 2025)
        >>> resolve_years(12, 1, 2024, 12)
        (2024, 2025)
        >>> resolve_years(2, 2, 2030, 7, explicit_expiry_year=2026)
        (2026, 2026)
    """
    crosses = crosses_year_boundary(valid_from_month, expiry_month)

    if explicit_expiry_year is not None:
        valid_from_year = explicit_expiry_year - 1 if crosses else explicit_expiry_year
        return valid_from_year, explicit_expiry_year

    if crosses:
        if valid_from_month > observation_month:
            valid_from_year = observation_year - 1
        else:
            valid_from_year = observation_year
        return valid_from_year, valid_from_year + 1

    return observation_year, observation_year


class TemporalInferenceEngine:
    """
    Renders the validity window of a RawExtraction.

    When the expiry fragment is partly or entirely missing, the expiry
    borrows validFrom's month and/or day and the result is flagged with
    expiry_defaulted=True; whether that is acceptable is decided by the
    classifier.

    Example:
        >>> engine = TemporalInferenceEngine()
        >>> validity = engine.resolve(raw, ObservationContext(date(2025, 1, 2)))
        >>> validity.valid_from, validity.expiry
        (datetime.date(2024, 12, 30), datetime.date(2025, 1, 5))
    """

    def resolve(self, raw: RawExtraction, context: ObservationContext) -> Resolution:
        """
        Resolve validFrom and expiry dates.

        Args:
            raw: Parsed extraction.
            context: Observation context used to infer missing years.

        Returns:
            ResolvedValidity, or UndeterminedValidity when validFrom is
            missing or a fragment is not a real calendar date.
        """
        if not raw.has_valid_from:
            missing = [
                name for name, value in (
                    ('validFromDay', raw.valid_from_day),
                    ('validFromMonth', raw.valid_from_month),
                ) if value is None
            ]
            logger.info(f"Cannot resolve dates, missing {', '.join(missing)}")
            return UndeterminedValidity(f"Missing {' and '.join(missing)}")

        valid_from_year, expiry_year = resolve_years(
            raw.valid_from_month,
            raw.expiry_month,
            context.year,
            context.month,
            raw.explicit_expiry_year
        )

        expiry_month = raw.expiry_month if raw.expiry_month is not None else raw.valid_from_month
        expiry_day = raw.expiry_day if raw.expiry_day is not None else raw.valid_from_day
        defaulted = not raw.has_expiry

        try:
            valid_from = date(valid_from_year, raw.valid_from_month, raw.valid_from_day)
        except ValueError:
            return UndeterminedValidity(
                f"validFrom {raw.valid_from_day}/{raw.valid_from_month}/{valid_from_year} is not a calendar date"
            )

        try:
            expiry = date(expiry_year, expiry_month, expiry_day)
        except ValueError:
            return UndeterminedValidity(
                f"expiry {expiry_day}/{expiry_month}/{expiry_year} is not a calendar date"
            )

        if defaulted:
            logger.warning(
                f"Expiry fragment incomplete, defaulted expiry to {expiry.isoformat()}"
            )
        if expiry < valid_from:
            logger.warning(
                f"Resolved expiry {expiry.isoformat()} precedes validFrom {valid_from.isoformat()}"
            )

        logger.debug(
            f"Resolved validity {valid_from.isoformat()} -> {expiry.isoformat()} "
            f"(observed {context.observation_date.isoformat()}, "
            f"explicit year: {raw.explicit_expiry_year})"
        )
        return ResolvedValidity(valid_from=valid_from, expiry=expiry, expiry_defaulted=defaulted)
