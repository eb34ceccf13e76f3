from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from django.conf import settings


@dataclass(frozen=True)
class GamificationConfig:
    review_xp: Mapping[str, int]
    correct_multiplier: int
    deck_created_xp: int
    card_created_xp: int
    session_seconds_per_card: int
    session_xp_per_card: int
    xp_per_level: int
    default_period_days: int


def get_gamification_config() -> GamificationConfig:
    cfg = settings.GAMIFICATION
    return GamificationConfig(
        review_xp=dict(cfg['review_xp']),
        correct_multiplier=cfg.get('correct_multiplier', 2),
        deck_created_xp=cfg['deck_created_xp'],
        card_created_xp=cfg['card_created_xp'],
        session_seconds_per_card=cfg.get('session_seconds_per_card', 30),
        session_xp_per_card=cfg.get('session_xp_per_card', 5),
        xp_per_level=cfg.get('xp_per_level', 1000),
        default_period_days=cfg.get('default_period_days', 30),
    )


def review_xp(difficulty: str, is_correct: bool, config: Optional[GamificationConfig] = None) -> int:
    config = config or get_gamification_config()
    xp = config.review_xp.get(difficulty, 0)
    if is_correct:
        xp *= config.correct_multiplier
    return xp


def level_for_xp(total_xp: int, config: Optional[GamificationConfig] = None) -> int:
    config = config or get_gamification_config()
    return 1 + max(total_xp, 0) // config.xp_per_level


def level_bounds(level: int, config: Optional[GamificationConfig] = None) -> tuple[int, int]:
    """XP at which ``level`` starts and the XP needed to reach the next one."""
    config = config or get_gamification_config()
    return (level - 1) * config.xp_per_level, level * config.xp_per_level
