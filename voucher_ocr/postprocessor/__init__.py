"""
Post-Processing Module for the Voucher OCR System.

Turns the extraction service's raw text into a classified outcome:

    FieldParser -> TemporalInferenceEngine -> Classifier
"""

from .models import (
    ObservationContext,
    Denomination,
    RawExtraction,
    ResolvedValidity,
    VoucherExtraction,
    FailureReason,
    FailureRecord,
    ExtractionOutcome,
)
from .parser import FieldParser
from .temporal import TemporalInferenceEngine, UndeterminedValidity, resolve_years, crosses_year_boundary
from .classifier import Classifier
from .messages import get_failure_message

__all__ = [
    'ObservationContext',
    'Denomination',
    'RawExtraction',
    'ResolvedValidity',
    'VoucherExtraction',
    'FailureReason',
    'FailureRecord',
    'ExtractionOutcome',
    'FieldParser',
    'TemporalInferenceEngine',
    'UndeterminedValidity',
    'resolve_years',
    'crosses_year_boundary',
    'Classifier',
    'get_failure_message',
]
