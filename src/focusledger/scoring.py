from __future__ import annotations

import math

DISTRACTION_PENALTY = 5
SHORT_SESSION_PENALTY = 20
SHORT_SESSION_MINUTES = 10


def calculate_focus_score(duration_minutes: float, distraction_count: int) -> int:
    """Score a completed focus phase on a 0-100 scale.

    Starts at 100, loses 5 points per distraction and a flat 20 when the phase
    lasted under 10 minutes. The result is clamped to [0, 100].
    """
    score = 100 - DISTRACTION_PENALTY * max(0, int(distraction_count))
    if duration_minutes < SHORT_SESSION_MINUTES:
        score -= SHORT_SESSION_PENALTY
    clamped = max(0, min(100, score))
    # Half-up rounding; the terms above are integral already.
    return int(math.floor(clamped + 0.5))
