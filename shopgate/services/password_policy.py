"""
Password Policy.

Pure, deterministic checks shared by shop registration and password
change.  No I/O and no state.

Policy: minimum 8 characters, at least one uppercase letter, one
lowercase letter, one digit and one character from ``SPECIAL_CHARS``.
Rules are checked in that order and the first violation is reported.
"""

from __future__ import annotations

import re

from shopgate.models.auth_models import StrengthLabel, ValidationResult

MIN_LENGTH: int = 8
SPECIAL_CHARS: str = "!@#$%^&*()_+={}[]|:;<>,.?/~`-"

_UPPER_RE: re.Pattern[str] = re.compile(r"[A-Z]")
_LOWER_RE: re.Pattern[str] = re.compile(r"[a-z]")
_DIGIT_RE: re.Pattern[str] = re.compile(r"[0-9]")
_SPECIAL_RE: re.Pattern[str] = re.compile(f"[{re.escape(SPECIAL_CHARS)}]")

# (upper bound exclusive, label, colour), ascending.
_STRENGTH_BANDS: tuple[tuple[int, str, str], ...] = (
    (30, "Very Weak", "#ff4d4d"),
    (50, "Weak", "#ffa64d"),
    (70, "Moderate", "#ffff4d"),
    (90, "Strong", "#4dff4d"),
)
_STRONGEST: StrengthLabel = StrengthLabel(label="Very Strong", color="#4d4dff")


def validate_password(candidate: str) -> ValidationResult:
    """Check *candidate* against the policy.

    Returns
    -------
    ValidationResult
        ``is_valid=False`` with the message of the first failing rule
        (length, uppercase, lowercase, digit, special), or
        ``is_valid=True``.
    """
    if not candidate:
        return ValidationResult(is_valid=False, message="Password is required")
    if len(candidate) < MIN_LENGTH:
        return ValidationResult(
            is_valid=False,
            message=f"Password must be at least {MIN_LENGTH} characters long",
        )
    if not _UPPER_RE.search(candidate):
        return ValidationResult(
            is_valid=False,
            message="Password must contain at least one uppercase letter",
        )
    if not _LOWER_RE.search(candidate):
        return ValidationResult(
            is_valid=False,
            message="Password must contain at least one lowercase letter",
        )
    if not _DIGIT_RE.search(candidate):
        return ValidationResult(
            is_valid=False,
            message="Password must contain at least one number",
        )
    if not _SPECIAL_RE.search(candidate):
        return ValidationResult(
            is_valid=False,
            message="Password must contain at least one special character",
        )
    return ValidationResult(is_valid=True, message="Password meets all requirements")


def strength_score(candidate: str) -> int:
    """Score *candidate* from 0 (weakest) to 100 (strongest).

    Length contributes 4 points per character up to 40; uppercase,
    lowercase and digits 10 each; a special character 15; and every
    character class present a further 5.
    """
    if not candidate:
        return 0

    classes = (
        bool(_UPPER_RE.search(candidate)),
        bool(_LOWER_RE.search(candidate)),
        bool(_DIGIT_RE.search(candidate)),
        bool(_SPECIAL_RE.search(candidate)),
    )
    upper, lower, digit, special = classes

    score = min(40, len(candidate) * 4)
    score += 10 * upper + 10 * lower + 10 * digit + 15 * special
    score += 5 * sum(classes)
    return min(100, score)


def strength_label(score: int) -> StrengthLabel:
    for upper_bound, label, color in _STRENGTH_BANDS:
        if score < upper_bound:
            return StrengthLabel(label=label, color=color)
    return _STRONGEST


def passwords_match(password: str, confirmation: str) -> ValidationResult:
    """Registration's confirmation-field rule."""
    if password != confirmation:
        return ValidationResult(is_valid=False, message="Passwords do not match")
    return ValidationResult(is_valid=True)
