"""Credit exhaustion classification.

Only three explicit upstream signals halt the pipeline. Everything else
is an ordinary per-file failure.
"""

__all__ = ["is_credit_exhausted", "error_text"]


def error_text(error: BaseException) -> str:
    """Return the upstream text the classifier inspects for an error.

    Errors that carry a response body are judged on the body alone. Their
    own message is this package's wording, not the service's.
    """
    body = getattr(error, "body", None)
    if isinstance(body, str):
        return body
    return str(error)


def is_credit_exhausted(error: BaseException) -> bool:
    """Check whether an error signals exhausted credits or quota.

    Args:
        error: Exception raised while processing a file

    Returns:
        True for an explicit quota code, a 429 with rate-limit wording,
        or a billing hard-limit message
    """
    text = error_text(error)
    lowered = text.lower()

    is_true_rate_limit = "429" in text and "rate" in lowered
    is_quota_exceeded = "insufficient_quota" in lowered
    is_billing_error = "billing" in lowered and "hard limit" in lowered

    return is_true_rate_limit or is_quota_exceeded or is_billing_error
