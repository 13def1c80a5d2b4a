"""
Field Parser Module.

Decodes the raw text returned by the extraction service into a
RawExtraction. Every JSON syntax error or schema violation is raised as
MalformedResponseError carrying the offending text verbatim.

Expected shape:
    {"type": "<5|10|20|0>", "validFromDay": int|null, "validFromMonth": int|null,
     "expiryDay": int|null, "expiryMonth": int|null, "expiryYear": int|null,
     "barcode": string|null}
"""

import json
import re
from typing import Any, Dict, Optional

from dateutil import parser as date_parser

from voucher_ocr.utils.logger import get_logger
from voucher_ocr.utils.exceptions import MalformedResponseError
from .models import Denomination, RawExtraction

# Initialize module logger
logger = get_logger(__name__)

_CODE_FENCE = re.compile(r'^\s*```(?:json)?\s*(.*?)\s*```\s*$', re.DOTALL | re.IGNORECASE)


class FieldParser:
    """
    Parser for the extraction service's JSON answer.

    Absent, null and empty-string fields decode to None. Zero is not
    treated as absence: a zero day or month is a schema violation.

    Example:
        >>> parser = FieldParser()
        >>> raw = parser.parse('{"type": "10", "validFromDay": 30, "validFromMonth": 12}')
        >>> raw.denomination
        <Denomination.TEN: '10'>
        >>> raw.expiry_day is None
        True
    """

    DAY_RANGE = (1, 31)
    MONTH_RANGE = (1, 12)

    def parse(self, raw_text: str) -> RawExtraction:
        """
        Parse raw response text into a RawExtraction.

        Args:
            raw_text: Text returned by the extraction service.

        Returns:
            Decoded RawExtraction.

        Raises:
            MalformedResponseError: On invalid JSON or schema violations.
        """
        if raw_text is None or not raw_text.strip():
            raise MalformedResponseError("empty response", raw_response=raw_text)

        payload = self._decode_json(raw_text)

        code = self._parse_type(payload, raw_text)

        valid_from_day = self._parse_int(payload, 'validFromDay', self.DAY_RANGE, raw_text)
        valid_from_month = self._parse_int(payload, 'validFromMonth', self.MONTH_RANGE, raw_text)
        expiry_day = self._parse_int(payload, 'expiryDay', self.DAY_RANGE, raw_text)
        expiry_month = self._parse_int(payload, 'expiryMonth', self.MONTH_RANGE, raw_text)
        expiry_year = self._parse_year(payload, raw_text)

        if expiry_day is None and expiry_month is None and payload.get('expiryDate'):
            expiry_day, expiry_month = self._parse_legacy_expiry(payload['expiryDate'], raw_text)

        extraction = RawExtraction(
            denomination=Denomination.from_code(code),
            denomination_code=code,
            valid_from_day=valid_from_day,
            valid_from_month=valid_from_month,
            expiry_day=expiry_day,
            expiry_month=expiry_month,
            explicit_expiry_year=expiry_year,
            barcode=self._parse_barcode(payload, raw_text)
        )

        logger.debug(f"Parsed extraction: {extraction.to_dict()}")
        return extraction

    def _decode_json(self, raw_text: str) -> Dict[str, Any]:
        """Decode the JSON object, tolerating a Markdown code fence around it."""
        text = raw_text
        fenced = _CODE_FENCE.match(text)
        if fenced:
            text = fenced.group(1)

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"invalid JSON ({e.msg})", raw_response=raw_text)

        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"expected a JSON object, got {type(payload).__name__}",
                raw_response=raw_text
            )
        return payload

    def _parse_type(self, payload: Dict[str, Any], raw_text: str) -> str:
        if 'type' not in payload or payload['type'] is None:
            raise MalformedResponseError("missing 'type'", raw_response=raw_text)

        value = payload['type']
        if isinstance(value, bool):
            raise MalformedResponseError("'type' must be a string or integer", raw_response=raw_text)
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, str) and value.strip():
            return value.strip().lstrip('€')
        raise MalformedResponseError("'type' must be a string or integer", raw_response=raw_text)

    def _parse_int(
        self,
        payload: Dict[str, Any],
        key: str,
        bounds: tuple,
        raw_text: str
    ) -> Optional[int]:
        """Decode an optional integer field and check it against its bounds."""
        value = self._coerce_int(payload.get(key), key, raw_text)
        if value is None:
            return None

        low, high = bounds
        if not low <= value <= high:
            raise MalformedResponseError(
                f"'{key}' out of range: {value} (expected {low}-{high})",
                raw_response=raw_text
            )
        return value

    def _parse_year(self, payload: Dict[str, Any], raw_text: str) -> Optional[int]:
        """Decode expiryYear, widening two-digit years to 20YY."""
        value = self._coerce_int(payload.get('expiryYear'), 'expiryYear', raw_text)
        if value is None:
            return None

        if 0 <= value <= 99:
            return 2000 + value
        if 1000 <= value <= 9999:
            return value
        raise MalformedResponseError(f"'expiryYear' out of range: {value}", raw_response=raw_text)

    def _coerce_int(self, value: Any, key: str, raw_text: str) -> Optional[int]:
        if value is None:
            return None
        if isinstance(value, bool):
            raise MalformedResponseError(f"'{key}' must be an integer", raw_response=raw_text)
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return None
            if stripped.isdecimal():
                return int(stripped)
        raise MalformedResponseError(
            f"'{key}' must be an integer, got {value!r}",
            raw_response=raw_text
        )

    def _parse_legacy_expiry(self, value: Any, raw_text: str) -> tuple:
        """
        Take day and month from an ISO expiryDate string.

        The year is discarded: the older prompt asked the model to fill in
        the current year, so it was never read from the voucher.
        """
        if not isinstance(value, str):
            raise MalformedResponseError("'expiryDate' must be a string", raw_response=raw_text)
        try:
            parsed = date_parser.isoparse(value.strip())
        except ValueError:
            raise MalformedResponseError(f"'expiryDate' is not an ISO date: {value!r}", raw_response=raw_text)

        logger.debug(f"Using legacy expiryDate {value} for expiry day/month")
        return parsed.day, parsed.month

    def _parse_barcode(self, payload: Dict[str, Any], raw_text: str) -> Optional[str]:
        value = payload.get('barcode')
        if value is None:
            return None
        if isinstance(value, bool):
            raise MalformedResponseError("'barcode' must be a string", raw_response=raw_text)
        if isinstance(value, int):
            value = str(value)
        if not isinstance(value, str):
            raise MalformedResponseError("'barcode' must be a string", raw_response=raw_text)
        return value.strip() or None
