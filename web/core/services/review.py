from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import DatabaseError, transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from ..errors import StorageError, StudyValidationError
from ..models import Card, Deck, Difficulty, StudyEvent
from ..rewards import review_xp
from ..scheduling import ScheduleResult, SchedulerConfig, apply_review, due_filter
from .cards import get_user_card
from .events import log_card_review


@dataclass(frozen=True)
class ReviewOutcome:
    card: Card
    schedule: ScheduleResult
    xp: int
    event: Optional[StudyEvent]


def get_due_cards(user, deck: Optional[Deck] = None, *, now: Optional[datetime] = None) -> QuerySet:
    cards = Card.objects.for_user(user).filter(due_filter(now)).select_related('deck')
    if deck is not None:
        cards = cards.filter(deck=deck)
    return cards.order_by(F('next_review').asc(nulls_first=True), 'created_at')


def review_card_for_user(
    *,
    user,
    card_id,
    difficulty: str,
    is_correct: bool,
    study_time: int = 0,
    session_id=None,
    now: Optional[datetime] = None,
    config: Optional[SchedulerConfig] = None,
) -> ReviewOutcome:
    """
    Reschedule a card after a review and record the review in the event log.

    The card update is the review: if it fails the error propagates and nothing is logged.
    The log append happens afterwards and is best-effort.
    """
    try:
        difficulty = Difficulty(difficulty).value
    except ValueError as exc:
        raise StudyValidationError(f'unknown difficulty: {difficulty!r}') from exc
    if study_time < 0:
        raise StudyValidationError('study_time must be >= 0')
    now = now or timezone.now()

    try:
        with transaction.atomic():
            card = get_user_card(user, card_id, for_update=True)
            schedule = apply_review(card, is_correct, now=now, config=config)
    except DatabaseError as exc:
        raise StorageError(f'failed to record review for card {card_id}') from exc

    xp = review_xp(difficulty, is_correct)
    event = log_card_review(
        user,
        deck_id=card.deck_id,
        card_id=card.id,
        session_id=session_id,
        difficulty=difficulty,
        is_correct=is_correct,
        study_time=study_time,
        xp=xp,
        now=now,
    )
    return ReviewOutcome(card=card, schedule=schedule, xp=xp, event=event)


def due_status(card: Card, now: Optional[datetime] = None) -> str:
    """'new' for never reviewed cards, otherwise 'due' or 'scheduled' against ``next_review``."""
    if card.next_review is None:
        return 'new'
    return 'due' if card.is_due(now) else 'scheduled'
