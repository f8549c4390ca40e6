"""Classification of upstream HTTP failures into retryable and fatal."""

_OVERLOAD_MARKERS = ("resource exhausted", "overloaded", "unavailable", "temporarily", "503")


def is_retryable_generation_failure(status: int, error_text: str) -> bool:
    """Plan generation surfaces upstream model overloads as 5xx with a hint in the body."""
    lower = error_text.lower()
    if status in (429, 503):
        return True
    if status >= 500 and (any(m in lower for m in _OVERLOAD_MARKERS) or "429" in error_text):
        return True
    return False


def is_rate_limited(status: int, error_text: str) -> bool:
    """Simulator and judge calls retry on rate limits and transient 503s."""
    lower = error_text.lower()
    return (
        status in (429, 503)
        or "resource exhausted" in lower
        or "429" in error_text
        or "503" in error_text
    )
