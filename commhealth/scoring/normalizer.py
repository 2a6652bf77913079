# commhealth/scoring/normalizer.py
"""
Canonical percentage scale for stored scores.

Stored responses carry two score representations: older rows hold a bare
1-4 mean per section, newer rows hold a {score, max, percentage} record.
Both are resolved here, once, into a tagged value and then into a plain
percentage; nothing downstream inspects the stored shape again.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Mapping, Optional, Union

from commhealth.app.errors import InvalidScoreShape
from commhealth.db.models import SCALE_MAX, SCALE_MIN


Number = Union[int, float]


@dataclass(frozen=True)
class RawScale:
    # A bare value on the 1-4 Likert scale.
    value: float


@dataclass(frozen=True)
class Percentage:
    # A value already on the 0-100 scale.
    value: Number


ScoreValue = Union[RawScale, Percentage]


def round_half_up(x: float) -> int:
    # Half-up rounding; Python's round() rounds half to even (round(62.5) == 62).
    return int(math.floor(x + 0.5))


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_missing(value: Any) -> bool:
    return value is None or (_is_number(value) and math.isnan(float(value)))


def _percentage_from_record(value: Mapping[str, Any]) -> Optional[Percentage]:
    pct = value["percentage"]
    if _is_missing(pct):
        return None
    if not _is_number(pct) or not 0 <= pct <= 100:
        raise InvalidScoreShape(value, f"percentage must be a number in 0-100, got {pct!r}")
    return Percentage(pct)


def classify_score(value: Any) -> Optional[ScoreValue]:
    """
    Resolve a stored section score into RawScale | Percentage.

    Returns None for absent values (None / NaN). Raises InvalidScoreShape for
    anything that is neither a 1-4 number nor a mapping with a 'percentage'.
    """
    if _is_missing(value):
        return None
    if isinstance(value, Mapping):
        if "percentage" not in value:
            raise InvalidScoreShape(value, "score record has no 'percentage'")
        return _percentage_from_record(value)
    if _is_number(value):
        if SCALE_MIN <= value <= SCALE_MAX:
            return RawScale(float(value))
        raise InvalidScoreShape(value, f"bare score {value!r} is outside the {SCALE_MIN}-{SCALE_MAX} scale")
    raise InvalidScoreShape(value)


def classify_overall(value: Any) -> Optional[ScoreValue]:
    # The overall column holds either a 1-4 mean or a 0-100 percentage.
    # A real percentage is never below 25 (every answer is >= 1), so (4, 100] is unambiguous.
    if _is_number(value) and not _is_missing(value):
        if SCALE_MAX < value <= 100:
            return Percentage(value)
        # Older rows stored 0 when nothing was answered; that is absence, not a score.
        if value == 0:
            return None
    return classify_score(value)


def to_percentage(score: Optional[ScoreValue]) -> Optional[Number]:
    if score is None:
        return None
    if isinstance(score, Percentage):
        return score.value
    return round_half_up((score.value / SCALE_MAX) * 100)


def normalize(value: Any) -> Optional[Number]:
    return to_percentage(classify_score(value))


def normalize_overall(value: Any) -> Optional[Number]:
    return to_percentage(classify_overall(value))


def to_percentage_shape(value: Any) -> Optional[Dict[str, Number]]:
    pct = normalize(value)
    if pct is None:
        return None
    return {"percentage": pct}


def to_likert_value(percentage: Optional[Number]) -> Optional[float]:
    # Back onto the 1-4 reading used for labels such as "3.2/4.0".
    if percentage is None:
        return None
    return (percentage / 100) * SCALE_MAX
