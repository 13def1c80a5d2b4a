"""
Voucher Data Model.

This module defines the transient data structures that flow through the
extraction pipeline. All of them are built per invocation and discarded
once the caller has consumed the outcome.

    ObservationContext -> RawExtraction -> ResolvedValidity
                                        -> VoucherExtraction | FailureRecord
"""

import json
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Union

from voucher_ocr.utils.helpers import format_date


@dataclass(frozen=True)
class ObservationContext:
    """
    When the image was submitted.

    Only used to disambiguate missing years; never stored with the voucher.
    """
    observation_date: date

    @property
    def year(self) -> int:
        return self.observation_date.year

    @property
    def month(self) -> int:
        return self.observation_date.month

    @classmethod
    def today(cls) -> 'ObservationContext':
        return cls(date.today())


class Denomination(Enum):
    """Discount amount printed on the voucher. REJECTED covers every unaccepted code."""
    FIVE = "5"
    TEN = "10"
    TWENTY = "20"
    REJECTED = "0"

    @classmethod
    def from_code(cls, code: str) -> 'Denomination':
        """
        Decode a denomination code.

        Example:
            >>> Denomination.from_code("10")
            <Denomination.TEN: '10'>
            >>> Denomination.from_code("3")
            <Denomination.REJECTED: '0'>
        """
        for member in cls:
            if member is not cls.REJECTED and member.value == code:
                return member
        return cls.REJECTED

    @property
    def amount(self) -> int:
        return int(self.value)


@dataclass(frozen=True)
class RawExtraction:
    """
    Typed fields decoded from the model's JSON answer.

    None means "not extracted" for every optional field; it is never
    conflated with a zero day, month or year.

    Attributes:
        denomination: Decoded denomination (REJECTED for any unaccepted code)
        denomination_code: The code exactly as the model reported it
        valid_from_day: Start day (1-31)
        valid_from_month: Start month (1-12)
        expiry_day: End day (1-31)
        expiry_month: End month (1-12)
        explicit_expiry_year: Four-digit year, only when printed on the voucher
        barcode: Number printed below the barcode
    """
    denomination: Denomination
    denomination_code: str
    valid_from_day: Optional[int] = None
    valid_from_month: Optional[int] = None
    expiry_day: Optional[int] = None
    expiry_month: Optional[int] = None
    explicit_expiry_year: Optional[int] = None
    barcode: Optional[str] = None

    @property
    def has_valid_from(self) -> bool:
        return self.valid_from_day is not None and self.valid_from_month is not None

    @property
    def has_expiry(self) -> bool:
        return self.expiry_day is not None and self.expiry_month is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.denomination_code,
            'validFromDay': self.valid_from_day,
            'validFromMonth': self.valid_from_month,
            'expiryDay': self.expiry_day,
            'expiryMonth': self.expiry_month,
            'expiryYear': self.explicit_expiry_year,
            'barcode': self.barcode,
        }


@dataclass(frozen=True)
class ResolvedValidity:
    """
    Concrete validity window.

    Equality compares the two dates only; expiry_defaulted records that the
    expiry borrowed validFrom's month or day because its own fragment was
    missing.
    """
    valid_from: date
    expiry: date
    expiry_defaulted: bool = field(default=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'validFrom': format_date(self.valid_from),
            'expiry': format_date(self.expiry),
            'expiryDefaulted': self.expiry_defaulted,
        }


class FailureReason(Enum):
    """Machine-readable failure taxonomy."""
    MODEL_UNAVAILABLE = "ModelUnavailable"
    MALFORMED_RESPONSE = "MalformedResponse"
    UNRECOGNIZED_DENOMINATION = "UnrecognizedDenomination"
    UNRESOLVABLE_DATES = "UnresolvableDates"
    NETWORK_ERROR = "NetworkError"


@dataclass(frozen=True)
class VoucherExtraction:
    """Accepted voucher with its resolved validity window."""
    denomination: Denomination
    validity: ResolvedValidity
    raw_response: str
    barcode: Optional[str] = None

    @property
    def success(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'type': self.denomination.value,
            'validFrom': format_date(self.validity.valid_from),
            'expiryDate': format_date(self.validity.expiry),
            'barcode': self.barcode,
            'rawResponse': self.raw_response,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


@dataclass(frozen=True)
class FailureRecord:
    """Classified failure returned to the caller instead of raising."""
    reason: FailureReason
    detail: str
    raw_response: Optional[str] = None

    @property
    def success(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': False,
            'reason': self.reason.value,
            'detail': self.detail,
            'rawResponse': self.raw_response,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


ExtractionOutcome = Union[VoucherExtraction, FailureRecord]
