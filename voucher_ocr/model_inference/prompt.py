"""
Prompt Builder Module.

Builds the instruction sent to the vision extraction service. The only
parameter is the observation year; the wording is otherwise fixed so
that zero-temperature decoding stays reproducible.
"""

ACCEPTED_VOUCHER_TYPES = (
    "€5 off €25",
    "€10 off €40",
    "€10 off €50",
    "€20 off €80",
    "€20 off €100",
)

RESPONSE_EXAMPLE = (
    '{"type": "10", "validFromDay": 30, "validFromMonth": 12, '
    '"expiryDay": 5, "expiryMonth": 1, "expiryYear": null, "barcode": "1234567890"}'
)


def build_prompt(observation_year: int) -> str:
    """
    Build the extraction prompt for a given observation year.

    Args:
        observation_year: Year the image was submitted.

    Returns:
        Prompt text.

    Example:
        >>> "The current year is 2025." in build_prompt(2025)
        True
    """
    voucher_types = "\n".join(f"- {voucher_type}" for voucher_type in ACCEPTED_VOUCHER_TYPES)

    return f"""You are analyzing an image of a voucher.
We are ONLY looking for specific Dunnes Stores vouchers (Ireland) of these exact types:
{voucher_types}

Any other voucher type (e.g. "€1 off", "€3 off", product specific, or from other stores) is INVALID.

The current year is {observation_year}.
The date format on the voucher can vary, examples:
- Valid 30 Dec - 5 Jan
- Coupon valid from 23/11/25 to 29/11/25
- Expires 04-01-2025, Valid 18 Dec - 4 Jan
- Expires Monday, Valid 30 Dec - 5 Jan

IMPORTANT: Extract dates from the validity range (e.g., "Valid 30 Dec - 5 Jan"). If there's a conflict between a relative date like "Expires Monday" and an explicit date range, USE THE DATE RANGE.

Extract:
1. **type**: The discount amount ("5", "10" or "20"). If it is NOT one of these specific amounts, return "0".
2. **validFromDay**: The day of the month of the start date (in "Valid 30 Dec - 5 Jan", extract 30).
3. **validFromMonth**: The month number of the start date (in "Valid 30 Dec - 5 Jan", extract 12).
4. **expiryDay**: The day of the month of the end date (in "Valid 30 Dec - 5 Jan", extract 5).
5. **expiryMonth**: The month number of the end date (in "Valid 30 Dec - 5 Jan", extract 1).
6. **expiryYear**: ONLY if the voucher itself prints a year for the end date (e.g., "29/11/25" or "Expires 04-01-2025"), the four-digit year (2025). Never guess it.
7. **barcode**: The number below the barcode.

Return ONLY JSON:
{RESPONSE_EXAMPLE}

If barcode is missing: null.
If type is unknown or invalid: "0".
If any day or month is unknown: null.
If no year is printed for the end date: null."""
