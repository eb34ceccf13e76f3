from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import DatabaseError
from django.db.models import Q
from django.utils import timezone

from .errors import StorageError
from .models import Card


@dataclass(frozen=True)
class SchedulerConfig:
    interval_ladder_days: tuple[int, ...]


@dataclass(frozen=True)
class ScheduleResult:
    review_count: int
    interval_days: int
    next_review: datetime


def get_scheduler_config() -> SchedulerConfig:
    cfg = settings.SCHEDULER_DEFAULTS
    ladder = tuple(int(days) for days in cfg['interval_ladder_days'])
    if not ladder:
        raise ValueError('interval_ladder_days must not be empty')
    return SchedulerConfig(interval_ladder_days=ladder)


def interval_for(review_count: int, config: Optional[SchedulerConfig] = None) -> int:
    """Days until the next review for a card that has ``review_count`` consecutive correct answers."""
    if review_count < 0:
        raise ValueError('review_count must be >= 0')
    config = config or get_scheduler_config()
    ladder = config.interval_ladder_days
    return ladder[min(review_count, len(ladder) - 1)]


def schedule_next(
    current_review_count: int,
    is_correct: bool,
    *,
    now: Optional[datetime] = None,
    config: Optional[SchedulerConfig] = None,
) -> ScheduleResult:
    config = config or get_scheduler_config()
    now = now or timezone.now()
    # A miss sends the card back to the start of the ladder.
    review_count = current_review_count + 1 if is_correct else 0
    days = interval_for(review_count, config)
    return ScheduleResult(
        review_count=review_count,
        interval_days=days,
        next_review=now + timedelta(days=days),
    )


def apply_review(
    card: Card,
    is_correct: bool,
    *,
    now: Optional[datetime] = None,
    config: Optional[SchedulerConfig] = None,
) -> ScheduleResult:
    now = now or timezone.now()
    result = schedule_next(card.review_count, is_correct, now=now, config=config)

    card.review_count = result.review_count
    card.last_reviewed = now
    card.next_review = result.next_review
    card.updated_at = now
    try:
        card.save(update_fields=['review_count', 'last_reviewed', 'next_review', 'updated_at'])
    except DatabaseError as exc:
        raise StorageError(f'failed to update review state for card {card.pk}') from exc
    return result


def due_filter(now: Optional[datetime] = None) -> Q:
    now = now or timezone.now()
    return Q(next_review__lte=now) | Q(next_review__isnull=True)
