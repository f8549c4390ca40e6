"""Small French/English text classifiers used to steer scripted conversations."""

import re

_AFFIRMATIVE = re.compile(
    r"\b(oui|ouais|ok|okay|d'accord|dac|vas[- ]?y|go|let'?s go|carr[ée]|yep|yes)\b",
    re.IGNORECASE,
)
_CHECKUP_INTENT = re.compile(r"\b(check(?:up)?|bilan)\b", re.IGNORECASE)
_EXPLICIT_STOP = re.compile(
    r"\b(?:stop|pause|arr[êe]te|arr[êe]tons|annule|annulons|on\s+arr[êe]te"
    r"|on\s+peut\s+arr[êe]ter|je\s+veux\s+arr[êe]ter|c['’]est\s+trop|c['’]est\s+lourd"
    r"|pas\s+de\s+bilan)\b",
    re.IGNORECASE,
)
_DONE_SIGNAL = re.compile(r"c['’]est\s*bon", re.IGNORECASE)


def looks_affirmative(text: str | None) -> bool:
    t = (text or "").strip().lower()
    return bool(t) and bool(_AFFIRMATIVE.search(t))


def looks_like_checkup_intent(text: str | None) -> bool:
    return bool(_CHECKUP_INTENT.search(text or ""))


def looks_like_explicit_stop(text: str | None) -> bool:
    """True for explicit requests to stop the running flow.

    Deferrals such as "plus tard" are not stops.
    """
    t = (text or "").strip()
    return bool(t) and bool(_EXPLICIT_STOP.search(t))


def signals_done(text: str | None) -> bool:
    return bool(_DONE_SIGNAL.search(text or ""))


def normalize(text: str | None) -> str:
    return (text or "").strip().lower()
