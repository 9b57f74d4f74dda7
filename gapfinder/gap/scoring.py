"""
Opportunity Score

Heuristic value of targeting a keyword the competitor ranks for and you
don't:

    score = volume_weight * volume
            / (position_weight * position + difficulty_weight * difficulty + smoothing)

Higher volume raises the score; a worse competitor position or a higher
difficulty lowers it. A competitor without a known position is treated as
ranking at `missing_position` (far down the SERP), never at 0.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class OpportunityWeights:
    """Tunable weights for the opportunity score."""
    volume_weight: float = 1.0
    position_weight: float = 1.0
    difficulty_weight: float = 1.0
    missing_position: int = 100
    smoothing: float = 1.0

    def __post_init__(self):
        if self.volume_weight < 0 or self.position_weight < 0 or self.difficulty_weight < 0:
            raise ValueError("Opportunity weights must be non-negative")
        if self.smoothing < 1:
            raise ValueError("smoothing must be >= 1 to keep the denominator positive")
        if self.missing_position < 1:
            raise ValueError("missing_position must be >= 1")

    @classmethod
    def from_settings(cls, settings) -> "OpportunityWeights":
        return cls(
            volume_weight=settings.OPPORTUNITY_VOLUME_WEIGHT,
            position_weight=settings.OPPORTUNITY_POSITION_WEIGHT,
            difficulty_weight=settings.OPPORTUNITY_DIFFICULTY_WEIGHT,
            missing_position=settings.OPPORTUNITY_MISSING_POSITION,
            smoothing=settings.OPPORTUNITY_SMOOTHING,
        )


DEFAULT_WEIGHTS = OpportunityWeights()


def opportunity_score(
    search_volume: Optional[int],
    their_position: Optional[int],
    difficulty: Optional[int] = None,
    weights: OpportunityWeights = DEFAULT_WEIGHTS,
) -> float:
    """
    Calculate the opportunity score for a missing keyword.

    Args:
        search_volume: Monthly searches (None counts as 0)
        their_position: Competitor's SERP rank (None/0 -> weights.missing_position)
        difficulty: Keyword difficulty 0-100 (None counts as 0)
        weights: Score weights

    Returns:
        Non-negative score, rounded to 4 decimals
    """
    volume = max(0, search_volume or 0)
    position = their_position if their_position and their_position > 0 else weights.missing_position
    kd = max(0, difficulty or 0)

    denominator = (
        weights.position_weight * position
        + weights.difficulty_weight * kd
        + weights.smoothing
    )

    return round(weights.volume_weight * volume / denominator, 4)
