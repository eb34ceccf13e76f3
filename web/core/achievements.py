"""
Achievement catalog and condition vocabulary.

The catalog is a fixed tuple of frozen templates. Per-user rows are copied out of it
when a user is initialized, so nothing here is ever mutated at runtime.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass

from django.db import models


class ConditionType(models.TextChoices):
    TOTAL_DECKS = 'total_decks', 'Total decks'
    TOTAL_CARDS = 'total_cards', 'Total cards'
    TOTAL_SESSIONS = 'total_sessions', 'Total sessions'
    TOTAL_STUDY_TIME = 'total_study_time', 'Total study time'
    STUDY_STREAK = 'study_streak', 'Study streak'
    SESSION_ACCURACY = 'session_accuracy', 'Session accuracy'
    CARDS_PER_SESSION = 'cards_per_session', 'Cards per session'


class ConditionOperator(models.TextChoices):
    GTE = '>=', 'At least'
    LTE = '<=', 'At most'
    EQ = '==', 'Exactly'
    GT = '>', 'More than'
    LT = '<', 'Less than'

    def compare(self, current: int, threshold: int) -> bool:
        return _COMPARATORS[self](current, threshold)


_COMPARATORS = {
    ConditionOperator.GTE: operator.ge,
    ConditionOperator.LTE: operator.le,
    ConditionOperator.EQ: operator.eq,
    ConditionOperator.GT: operator.gt,
    ConditionOperator.LT: operator.lt,
}


class AchievementCategory(models.TextChoices):
    CREATION = 'creation', 'Creation'
    STUDY = 'study', 'Study'
    STREAK = 'streak', 'Streak'
    ACCURACY = 'accuracy', 'Accuracy'


@dataclass(frozen=True)
class Condition:
    type: ConditionType
    operator: ConditionOperator
    value: int


@dataclass(frozen=True)
class AchievementTemplate:
    name: str
    description: str
    icon: str
    category: AchievementCategory
    condition: Condition
    target: int
    xp_reward: int


ACHIEVEMENT_TEMPLATES: tuple[AchievementTemplate, ...] = (
    AchievementTemplate(
        name='First Step',
        description='Create your first deck',
        icon='🎯',
        category=AchievementCategory.CREATION,
        condition=Condition(ConditionType.TOTAL_DECKS, ConditionOperator.GTE, 1),
        target=1,
        xp_reward=50,
    ),
    AchievementTemplate(
        name='Content Creator',
        description='Create 5 decks',
        icon='📚',
        category=AchievementCategory.CREATION,
        condition=Condition(ConditionType.TOTAL_DECKS, ConditionOperator.GTE, 5),
        target=5,
        xp_reward=100,
    ),
    AchievementTemplate(
        name='Card Master',
        description='Create 50 cards',
        icon='🃏',
        category=AchievementCategory.CREATION,
        condition=Condition(ConditionType.TOTAL_CARDS, ConditionOperator.GTE, 50),
        target=50,
        xp_reward=200,
    ),
    AchievementTemplate(
        name='Dedicated Student',
        description='Complete 10 study sessions',
        icon='📖',
        category=AchievementCategory.STUDY,
        condition=Condition(ConditionType.TOTAL_SESSIONS, ConditionOperator.GTE, 10),
        target=10,
        xp_reward=150,
    ),
    AchievementTemplate(
        name='Marathoner',
        description='Study for one hour in total',
        icon='⏰',
        category=AchievementCategory.STUDY,
        # seconds
        condition=Condition(ConditionType.TOTAL_STUDY_TIME, ConditionOperator.GTE, 3600),
        target=3600,
        xp_reward=100,
    ),
    AchievementTemplate(
        name='Consistent',
        description='Keep a 3 day streak',
        icon='🔥',
        category=AchievementCategory.STREAK,
        condition=Condition(ConditionType.STUDY_STREAK, ConditionOperator.GTE, 3),
        target=3,
        xp_reward=75,
    ),
    AchievementTemplate(
        name='Unstoppable',
        description='Keep a 7 day streak',
        icon='👑',
        category=AchievementCategory.STREAK,
        condition=Condition(ConditionType.STUDY_STREAK, ConditionOperator.GTE, 7),
        target=7,
        xp_reward=200,
    ),
    AchievementTemplate(
        name='Sharpshooter',
        description='Reach 80% accuracy in a session',
        icon='🎯',
        category=AchievementCategory.ACCURACY,
        condition=Condition(ConditionType.SESSION_ACCURACY, ConditionOperator.GTE, 80),
        target=80,
        xp_reward=100,
    ),
    AchievementTemplate(
        name='Perfectionist',
        description='Reach 95% accuracy in a session',
        icon='💎',
        category=AchievementCategory.ACCURACY,
        condition=Condition(ConditionType.SESSION_ACCURACY, ConditionOperator.GTE, 95),
        target=95,
        xp_reward=300,
    ),
    AchievementTemplate(
        name='Speedster',
        description='Review 20 cards in a session',
        icon='⚡',
        category=AchievementCategory.STUDY,
        condition=Condition(ConditionType.CARDS_PER_SESSION, ConditionOperator.GTE, 20),
        target=20,
        xp_reward=150,
    ),
)
