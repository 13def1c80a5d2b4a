"""End-user wording for each failure reason, as sent back by the voucher bot."""

from .models import FailureReason

FAILURE_MESSAGES = {
    FailureReason.MODEL_UNAVAILABLE:
        "Voucher reading is temporarily unavailable. Please try again in a few minutes.",
    FailureReason.NETWORK_ERROR:
        "We encountered an error while processing your voucher. Please try again or contact support.",
    FailureReason.MALFORMED_RESPONSE:
        "We couldn't read this voucher. Please send a clearer photo of the whole voucher.",
    FailureReason.UNRECOGNIZED_DENOMINATION:
        "This voucher does not appear to be a valid €5, €10, or €20 voucher. "
        "We only accept these specific general spend vouchers.",
    FailureReason.UNRESOLVABLE_DATES:
        "We couldn't determine the validity dates. "
        "Please make sure the validity dates are clear in the photo.",
}


def get_failure_message(reason: FailureReason) -> str:
    """Return the message shown to the person who submitted the voucher."""
    return FAILURE_MESSAGES[reason]
