"""
Password entry checks.

Confirmation matching plus strength feedback. Scoring is delegated to
zxcvbn; this module only maps its result onto labels and alert levels.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from zxcvbn import zxcvbn

from .alerts import AlertLevel
from .errors import ValidationError

STRENGTH_LABELS = ("very weak", "weak", "so-so", "strong", "very strong")

STRENGTH_LEVELS = (
    AlertLevel.ERROR,
    AlertLevel.ERROR,
    AlertLevel.WARNING,
    AlertLevel.SUCCESS,
    AlertLevel.SUCCESS,
)

# Always treated as guessable in addition to the account name
APP_WORDS = ("whawty",)

MAX_SCORE = 4


@dataclass
class PasswordFeedback:
    """
    Strength estimate for one password.

    Attributes:
        score: zxcvbn score, 0 (worst) to 4 (best)
        crack_time: Estimated offline crack time, human readable
        summary: One-line verdict
        level: Alert level matching the verdict
        suggestions: Additional hints from zxcvbn
    """
    score: int
    crack_time: str
    summary: str
    level: AlertLevel
    suggestions: List[str] = field(default_factory=list)

    @property
    def stars(self) -> str:
        return "★" * self.score + "☆" * (MAX_SCORE - self.score)


def passwords_match(password: str, confirmation: str) -> bool:
    """True if the password is non-empty and equals its confirmation."""
    return password != "" and password == confirmation


def require_matching(password: str, confirmation: str) -> None:
    """
    Reject an empty or unconfirmed password.

    Raises:
        ValidationError: On empty password or mismatching confirmation
    """
    if password == "":
        raise ValidationError("password", "password must not be empty")
    if password != confirmation:
        raise ValidationError("confirmation", "passwords do not match")


def estimate_strength(password: str, user_inputs: Sequence[str] = ()) -> PasswordFeedback:
    """
    Score a password.

    Args:
        password: Candidate password
        user_inputs: Context words (e.g. the username) to penalize

    Returns:
        PasswordFeedback
    """
    if password == "":
        return PasswordFeedback(
            score=0,
            crack_time="-",
            summary="Please type in a password",
            level=AlertLevel.INFO,
        )

    inputs = [w for w in user_inputs if w] + list(APP_WORDS)
    res = zxcvbn(password, user_inputs=inputs)

    score = max(0, min(MAX_SCORE, int(res["score"])))
    crack_time = str(res["crack_times_display"]["offline_slow_hashing_1e4_per_second"])
    feedback = res.get("feedback") or {}

    warning = feedback.get("warning")
    if warning:
        summary = warning
        level = AlertLevel.ERROR
    else:
        summary = f"This is a {STRENGTH_LABELS[score]} password"
        level = STRENGTH_LEVELS[score]

    return PasswordFeedback(
        score=score,
        crack_time=crack_time,
        summary=summary,
        level=level,
        suggestions=list(feedback.get("suggestions") or []),
    )
