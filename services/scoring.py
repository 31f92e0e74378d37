"""
Score formulas shared by the platform adapters and the visibility hub.
"""

import math
from typing import Optional, Sequence


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up, the way scores are displayed."""
    return int(math.floor(value + 0.5))


def round_one_decimal(value: float) -> float:
    return round_half_up(value * 10) / 10


def calculate_platform_score(mentions: int, total_keywords: int, ranking: Optional[int]) -> int:
    """
    60 points for how often the target was mentioned, 40 for how high it ranked.

    >>> calculate_platform_score(2, 4, 1)
    70
    """
    if total_keywords <= 0:
        return 0
    mention_rate = mentions / total_keywords
    position_bonus = max(0.0, (6 - ranking) / 5) if ranking else 0.0
    return round_half_up(mention_rate * 60 + position_bonus * 40)


def calculate_historical_score(mentions: int, queries: int, positions: Sequence[int]) -> int:
    """50 points for mention frequency over the day range, 50 for average position."""
    if queries == 0:
        return 0
    mention_score = (mentions / queries) * 50
    position_score = 0.0
    if positions:
        avg_position = sum(positions) / len(positions)
        position_score = max(0.0, 50 - avg_position * 5)
    return round_half_up(mention_score + position_score)
