"""
Study statistics derived from the event log.

Every view is a single aggregate query over ``StudyEvent`` rows of one user. Views return
zero-valued structures when the user has no events. Database errors are not caught here:
statistics computed from a partial read cannot be trusted, so they propagate to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from functools import partial
from typing import Callable, Optional

from django.db.models import Count, IntegerField, Max, Min, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from ..errors import StudyError, StudyValidationError
from ..models import ActionType, StudyEvent
from .decks import resolve_deck_name

logger = logging.getLogger(__name__)

PERIOD_DAY = 'day'
PERIOD_WEEK = 'week'
PERIOD_MONTH = 'month'

_PERIOD_KEYS: dict[str, tuple[str, ...]] = {
    PERIOD_DAY: ('calendar_date',),
    PERIOD_WEEK: ('iso_year', 'iso_week'),
    PERIOD_MONTH: ('year', 'month'),
}


@dataclass
class StudyStatsSummary:
    total_study_time: int = 0
    total_sessions: int = 0
    total_cards: int = 0
    average_accuracy: float = 0.0
    study_streak: int = 0
    total_xp: int = 0
    current_level: int = 1
    decks_created: int = 0
    cards_created: int = 0
    achievements_unlocked: int = 0


@dataclass
class PeriodStats:
    period: str
    date: str
    study_time: int = 0
    sessions: int = 0
    cards_reviewed: int = 0
    accuracy: float = 0.0
    xp: int = 0
    correct_answers: int = 0
    answered: int = 0


@dataclass
class DifficultyPerformance:
    difficulty: str
    count: int
    percentage: float
    average_time: float


@dataclass
class DeckPerformance:
    deck_id: int
    deck_name: str
    study_time: int
    sessions: int
    cards_reviewed: int
    accuracy: float
    last_studied: Optional[datetime]


@dataclass
class TimeDistribution:
    morning: int = 0
    afternoon: int = 0
    evening: int = 0
    night: int = 0
    total_study_time: int = 0
    longest_session: int = 0
    shortest_session: int = 0
    average_time: int = 0


@dataclass
class DetailedStats:
    summary: StudyStatsSummary
    performance_by_difficulty: list[DifficultyPerformance] = field(default_factory=list)
    deck_performance: list[DeckPerformance] = field(default_factory=list)
    weekly_stats: list[PeriodStats] = field(default_factory=list)
    monthly_stats: list[PeriodStats] = field(default_factory=list)


def _accuracy(correct: int, answered: int) -> float:
    if not answered:
        return 0.0
    return correct / answered * 100


def whole_percent(correct: int, answered: int) -> int:
    if not answered:
        return 0
    return correct * 100 // answered


def _sum(field_name: str) -> Coalesce:
    return Coalesce(Sum(field_name), 0, output_field=IntegerField())


def _action_count(action_type: str) -> Count:
    return Count('id', filter=Q(action_type=action_type))


def _answer_counts() -> dict:
    return {
        'correct_answers': Count('id', filter=Q(is_correct=True)),
        'total_answers': Count('id', filter=Q(is_correct__isnull=False)),
    }


def _bucket_aggregates() -> dict:
    return {
        'study_time_total': _sum('study_time'),
        'sessions': _action_count(ActionType.SESSION_START),
        'cards_reviewed': _action_count(ActionType.CARD_REVIEW),
        'xp_total': _sum('xp'),
        **_answer_counts(),
    }


def _latest_value(user, field_name: str) -> Optional[int]:
    return (
        StudyEvent.objects.for_user(user)
        .filter(**{f'{field_name}__isnull': False})
        .order_by('-created_at', '-id')
        .values_list(field_name, flat=True)
        .first()
    )


def get_summary(user) -> StudyStatsSummary:
    totals = StudyEvent.objects.for_user(user).aggregate(
        total_study_time=_sum('study_time'),
        total_sessions=_action_count(ActionType.SESSION_START),
        total_cards=_action_count(ActionType.CARD_REVIEW),
        total_xp=_sum('xp'),
        decks_created=_action_count(ActionType.DECK_CREATED),
        cards_created=_action_count(ActionType.CARD_CREATED),
        achievements_unlocked=_action_count(ActionType.ACHIEVEMENT_UNLOCKED),
        **_answer_counts(),
    )
    streak = _latest_value(user, 'streak')
    level = _latest_value(user, 'level')
    return StudyStatsSummary(
        total_study_time=totals['total_study_time'],
        total_sessions=totals['total_sessions'],
        total_cards=totals['total_cards'],
        average_accuracy=_accuracy(totals['correct_answers'], totals['total_answers']),
        study_streak=streak or 0,
        total_xp=totals['total_xp'],
        current_level=level or 1,
        decks_created=totals['decks_created'],
        cards_created=totals['cards_created'],
        achievements_unlocked=totals['achievements_unlocked'],
    )


def _period_label(period: str, row: dict) -> str:
    if period == PERIOD_DAY:
        return row['calendar_date'].isoformat()
    if period == PERIOD_WEEK:
        return f"{row['iso_year']}-W{row['iso_week']:02d}"
    return f"{row['year']}-{row['month']:02d}"


def get_stats_by_period(
    user,
    period: str = PERIOD_DAY,
    days: int = 30,
    *,
    now: Optional[datetime] = None,
) -> list[PeriodStats]:
    keys = _PERIOD_KEYS.get(period)
    if keys is None:
        raise StudyValidationError(f'unknown period: {period!r}')
    if days < 0:
        raise StudyValidationError('days must be >= 0')
    now = now or timezone.now()
    start = now - timedelta(days=days)

    rows = (
        StudyEvent.objects.for_user(user)
        .filter(created_at__gte=start)
        .values(*keys)
        .annotate(**_bucket_aggregates())
        .order_by(*keys)
    )
    return [
        PeriodStats(
            period=period,
            date=_period_label(period, row),
            study_time=row['study_time_total'],
            sessions=row['sessions'],
            cards_reviewed=row['cards_reviewed'],
            accuracy=_accuracy(row['correct_answers'], row['total_answers']),
            xp=row['xp_total'],
            correct_answers=row['correct_answers'],
            answered=row['total_answers'],
        )
        for row in rows
    ]


def get_performance_by_difficulty(user) -> list[DifficultyPerformance]:
    rows = list(
        StudyEvent.objects.for_user(user)
        .filter(action_type=ActionType.CARD_REVIEW, difficulty__isnull=False)
        .exclude(difficulty='')
        .values('difficulty')
        .annotate(count=Count('id'), total_time=_sum('study_time'))
        .order_by('difficulty')
    )
    total = sum(row['count'] for row in rows)
    performance = []
    for row in rows:
        count = row['count']
        performance.append(
            DifficultyPerformance(
                difficulty=row['difficulty'],
                count=count,
                percentage=count / total * 100 if total else 0.0,
                average_time=row['total_time'] / count if count else 0.0,
            )
        )
    return performance


def get_deck_performance(user, *, resolve_name: Optional[Callable[[int], str]] = None) -> list[DeckPerformance]:
    if resolve_name is None:
        resolve_name = partial(resolve_deck_name, user)

    rows = (
        StudyEvent.objects.for_user(user)
        .filter(deck_id__isnull=False)
        .values('deck_id')
        .annotate(last_studied=Max('created_at'), **_bucket_aggregates())
        .order_by('-last_studied', 'deck_id')
    )
    performance = []
    for row in rows:
        deck_id = row['deck_id']
        try:
            deck_name = resolve_name(deck_id)
        except StudyError as exc:
            logger.warning('Falling back to raw id for deck %s: %s', deck_id, exc)
            deck_name = str(deck_id)
        performance.append(
            DeckPerformance(
                deck_id=deck_id,
                deck_name=deck_name,
                study_time=row['study_time_total'],
                sessions=row['sessions'],
                cards_reviewed=row['cards_reviewed'],
                accuracy=_accuracy(row['correct_answers'], row['total_answers']),
                last_studied=row['last_studied'],
            )
        )
    return performance


def get_time_distribution(user) -> TimeDistribution:
    events = StudyEvent.objects.for_user(user)
    reviews = events.filter(action_type=ActionType.CARD_REVIEW).aggregate(
        morning=Count('id', filter=Q(created_at__hour__gte=6, created_at__hour__lt=12)),
        afternoon=Count('id', filter=Q(created_at__hour__gte=12, created_at__hour__lt=18)),
        evening=Count('id', filter=Q(created_at__hour__gte=18)),
        night=Count('id', filter=Q(created_at__hour__lt=6)),
        total_study_time=_sum('study_time'),
    )
    sessions = events.filter(action_type=ActionType.SESSION_END).aggregate(
        count=Count('id'),
        longest=Max('study_time'),
        shortest=Min('study_time'),
    )
    total_study_time = reviews['total_study_time']
    session_count = sessions['count']
    return TimeDistribution(
        morning=reviews['morning'],
        afternoon=reviews['afternoon'],
        evening=reviews['evening'],
        night=reviews['night'],
        total_study_time=total_study_time,
        longest_session=sessions['longest'] or 0,
        shortest_session=sessions['shortest'] or 0,
        average_time=total_study_time // session_count if session_count else 0,
    )


def get_detailed_stats(user, *, now: Optional[datetime] = None) -> DetailedStats:
    return DetailedStats(
        summary=get_summary(user),
        performance_by_difficulty=get_performance_by_difficulty(user),
        deck_performance=get_deck_performance(user),
        weekly_stats=get_stats_by_period(user, PERIOD_DAY, 7, now=now),
        monthly_stats=get_stats_by_period(user, PERIOD_DAY, 30, now=now),
    )


def compute_study_streak(user, *, now: Optional[datetime] = None) -> int:
    """
    Count consecutive calendar days with at least one card review.

    The run may end today or yesterday, so a streak is not broken before the user has
    studied on the current day.
    """
    today = timezone.localdate(now or timezone.now())
    study_days: set[date] = set(
        StudyEvent.objects.for_user(user)
        .filter(action_type=ActionType.CARD_REVIEW, calendar_date__lte=today)
        .order_by()
        .values_list('calendar_date', flat=True)
        .distinct()
    )
    current = today if today in study_days else today - timedelta(days=1)
    streak = 0
    while current in study_days:
        streak += 1
        current -= timedelta(days=1)
    return streak
