"""
Per-user achievement rows and their evaluation against study statistics.

Achievements only move from locked to unlocked. ``check_and_unlock`` skips rows that are
already unlocked, so repeated calls without new activity unlock nothing. Unlock writes are
plain overwrites: two evaluations racing on the same row both write the same values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from django.db import DatabaseError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from ..achievements import ACHIEVEMENT_TEMPLATES, AchievementCategory, ConditionOperator, ConditionType
from ..errors import StorageError, StudyError, StudyValidationError
from ..models import Achievement
from ..rewards import get_gamification_config, level_bounds
from .events import log_achievement_unlocked
from .stats import (
    PERIOD_DAY,
    PeriodStats,
    StudyStatsSummary,
    get_stats_by_period,
    get_summary,
    whole_percent,
)

logger = logging.getLogger(__name__)


def initialize_achievements(user) -> list[Achievement]:
    if Achievement.objects.for_user(user).exists():
        return []
    now = timezone.now()
    rows = [
        Achievement(
            user=user,
            name=template.name,
            description=template.description,
            icon=template.icon,
            category=template.category.value,
            condition_type=template.condition.type.value,
            condition_operator=template.condition.operator.value,
            condition_value=template.condition.value,
            unlocked=False,
            progress=0,
            target=template.target,
            xp_reward=template.xp_reward,
            created_at=now,
            updated_at=now,
        )
        for template in ACHIEVEMENT_TEMPLATES
    ]
    try:
        with transaction.atomic():
            return Achievement.objects.bulk_create(rows, ignore_conflicts=True)
    except DatabaseError as exc:
        raise StorageError(f'failed to initialize achievements for user {user.pk}') from exc


def list_achievements(user) -> QuerySet:
    return Achievement.objects.for_user(user).order_by('id')


def list_unlocked(user) -> QuerySet:
    return list_achievements(user).filter(unlocked=True)


def list_by_category(user, category: str) -> QuerySet:
    try:
        category = AchievementCategory(category).value
    except ValueError as exc:
        raise StudyValidationError(f'unknown achievement category: {category!r}') from exc
    return list_achievements(user).filter(category=category)


class _MetricSource:
    """Lazily loads the two views metrics are read from, once per evaluation."""

    def __init__(self, user, now: datetime):
        self._user = user
        self._now = now
        self._summary: Optional[StudyStatsSummary] = None
        self._latest_day: Optional[PeriodStats] = None
        self._latest_day_loaded = False

    @property
    def summary(self) -> StudyStatsSummary:
        if self._summary is None:
            self._summary = get_summary(self._user)
        return self._summary

    @property
    def latest_day(self) -> Optional[PeriodStats]:
        # The most recent daily bucket stands in for "the latest session"; several sessions
        # on the same day are merged into one value.
        if not self._latest_day_loaded:
            buckets = get_stats_by_period(self._user, PERIOD_DAY, 1, now=self._now)
            self._latest_day = buckets[-1] if buckets else None
            self._latest_day_loaded = True
        return self._latest_day

    def value_for(self, condition_type: ConditionType) -> int:
        if condition_type is ConditionType.TOTAL_DECKS:
            return self.summary.decks_created
        if condition_type is ConditionType.TOTAL_CARDS:
            return self.summary.cards_created
        if condition_type is ConditionType.TOTAL_SESSIONS:
            return self.summary.total_sessions
        if condition_type is ConditionType.TOTAL_STUDY_TIME:
            return self.summary.total_study_time
        if condition_type is ConditionType.STUDY_STREAK:
            return self.summary.study_streak
        if condition_type is ConditionType.SESSION_ACCURACY:
            latest = self.latest_day
            return whole_percent(latest.correct_answers, latest.answered) if latest else 0
        if condition_type is ConditionType.CARDS_PER_SESSION:
            latest = self.latest_day
            return latest.cards_reviewed if latest else 0
        raise StudyValidationError(f'unhandled condition type: {condition_type}')


def _parse_condition(achievement: Achievement) -> tuple[ConditionType, ConditionOperator]:
    try:
        condition_type = ConditionType(achievement.condition_type)
    except ValueError as exc:
        raise StudyValidationError(f'unknown condition type: {achievement.condition_type!r}') from exc
    try:
        condition_operator = ConditionOperator(achievement.condition_operator)
    except ValueError as exc:
        raise StudyValidationError(f'unknown condition operator: {achievement.condition_operator!r}') from exc
    return condition_type, condition_operator


def check_and_unlock(user, *, now: Optional[datetime] = None) -> list[Achievement]:
    now = now or timezone.now()
    metrics = _MetricSource(user, now)
    newly_unlocked: list[Achievement] = []

    for achievement in list_achievements(user).filter(unlocked=False):
        try:
            condition_type, condition_operator = _parse_condition(achievement)
            current = metrics.value_for(condition_type)
        except (StudyError, DatabaseError) as exc:
            logger.warning('Skipping achievement %r for user %s: %s', achievement.name, user.pk, exc)
            continue

        should_unlock = condition_operator.compare(current, achievement.condition_value)
        rows = Achievement.objects.filter(pk=achievement.pk)
        try:
            if current != achievement.progress:
                rows.update(progress=current, updated_at=now)
                achievement.progress = current
            if should_unlock:
                rows.update(unlocked=True, unlocked_at=now, progress=current, updated_at=now)
        except DatabaseError as exc:
            logger.warning('Could not persist achievement %r for user %s: %s', achievement.name, user.pk, exc)
            continue

        if should_unlock:
            achievement.unlocked = True
            achievement.unlocked_at = now
            achievement.updated_at = now
            newly_unlocked.append(achievement)
            logger.info('User %s unlocked achievement %r', user.pk, achievement.name)
            log_achievement_unlocked(user, achievement.name, achievement.xp_reward, now=now)

    return newly_unlocked


@dataclass
class GamificationProfile:
    total_xp: int
    level: int
    current_level_xp: int
    next_level_xp: int
    study_streak: int
    total_cards_created: int
    total_cards_reviewed: int
    total_study_sessions: int
    achievements_unlocked: int
    badges: list[Achievement] = field(default_factory=list)


def get_gamification_profile(user) -> GamificationProfile:
    summary = get_summary(user)
    badges = list(list_unlocked(user))
    current_level_xp, next_level_xp = level_bounds(summary.current_level, get_gamification_config())
    return GamificationProfile(
        total_xp=summary.total_xp,
        level=summary.current_level,
        current_level_xp=current_level_xp,
        next_level_xp=next_level_xp,
        study_streak=summary.study_streak,
        total_cards_created=summary.cards_created,
        total_cards_reviewed=summary.total_cards,
        total_study_sessions=summary.total_sessions,
        achievements_unlocked=len(badges),
        badges=badges,
    )
