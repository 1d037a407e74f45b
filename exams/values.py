"""Typed views over the JSON columns stored on exam questions."""
from dataclasses import dataclass
from typing import Any, List, Optional

from django.core.exceptions import ValidationError


@dataclass(frozen=True)
class PartialCreditRules:
    """Thresholds for partial credit on free-text answers.

    ``min_similarity`` is the normalized edit-distance similarity an answer
    must reach; ``partial_percentage`` is the share of the question's points
    awarded when it does. Either may be omitted, in which case the platform
    policy applies.
    """
    min_similarity: Optional[float] = None
    partial_percentage: Optional[float] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "PartialCreditRules":
        if raw in (None, "", {}):
            return cls()
        if not isinstance(raw, dict):
            raise ValidationError("partial_credit_rules must be an object.")

        unknown = set(raw) - {"min_similarity", "partial_percentage"}
        if unknown:
            raise ValidationError(f"Unknown partial credit rule(s): {', '.join(sorted(unknown))}")

        return cls(
            min_similarity=_fraction(raw.get("min_similarity"), "min_similarity"),
            partial_percentage=_fraction(raw.get("partial_percentage"), "partial_percentage"),
        )

    def to_raw(self) -> dict:
        data = {}
        if self.min_similarity is not None:
            data["min_similarity"] = self.min_similarity
        if self.partial_percentage is not None:
            data["partial_percentage"] = self.partial_percentage
        return data


def _fraction(value: Any, name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number.")
    if not 0 <= value <= 1:
        raise ValidationError(f"{name} must be between 0 and 1.")
    return float(value)


def parse_expected_answers(raw: Any) -> List[str]:
    """Expected answers are a list of non-empty strings (keywords for essays)."""
    if raw in (None, ""):
        return []
    if not isinstance(raw, list):
        raise ValidationError("expected_answers must be a list of strings.")
    answers = []
    for item in raw:
        if not isinstance(item, str):
            raise ValidationError("expected_answers must be a list of strings.")
        item = item.strip()
        if item:
            answers.append(item)
    return answers
