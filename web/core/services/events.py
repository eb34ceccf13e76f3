"""
Append-only study event log.

``record_event`` is the strict append used where the caller wants to know about failures.
``log_event`` and the ``log_*`` helpers are the best-effort appends used on primary request
paths: a failed append is logged and discarded so the action that triggered it still succeeds.
Analytics built on the log are therefore approximate when storage misbehaves.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..errors import StorageError, StudyError, StudyValidationError
from ..models import ActionType, Difficulty, StudyEvent

logger = logging.getLogger(__name__)


def _coerce_choice(choices, value: str, label: str) -> str:
    try:
        return choices(value).value
    except ValueError as exc:
        raise StudyValidationError(f'unknown {label}: {value!r}') from exc


def _coerce_uuid(value, label: str) -> Optional[uuid.UUID]:
    if value in (None, ''):
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError as exc:
        raise StudyValidationError(f'malformed {label}: {value!r}') from exc


def _coerce_deck_id(value) -> Optional[int]:
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise StudyValidationError(f'malformed deck_id: {value!r}') from exc


def record_event(
    user,
    action_type: str,
    *,
    deck_id=None,
    card_id=None,
    session_id=None,
    difficulty: Optional[str] = None,
    is_correct: Optional[bool] = None,
    study_time: Optional[int] = None,
    xp: Optional[int] = None,
    streak: Optional[int] = None,
    level: Optional[int] = None,
    achievement_name: str = '',
    now: Optional[datetime] = None,
) -> StudyEvent:
    if study_time is not None and study_time < 0:
        raise StudyValidationError('study_time must be >= 0')
    event = StudyEvent(
        user=user,
        action_type=_coerce_choice(ActionType, action_type, 'action type'),
        deck_id=_coerce_deck_id(deck_id),
        card_id=_coerce_uuid(card_id, 'card_id'),
        session_id=_coerce_uuid(session_id, 'session_id'),
        difficulty=_coerce_choice(Difficulty, difficulty, 'difficulty') if difficulty else None,
        is_correct=is_correct,
        study_time=study_time,
        xp=xp,
        streak=streak,
        level=level,
        achievement_name=achievement_name,
    )
    event.stamp(now or timezone.now())
    try:
        with transaction.atomic():
            event.save()
    except DatabaseError as exc:
        raise StorageError(f'failed to append {event.action_type} event') from exc
    return event


def log_event(user, action_type: str, **fields) -> Optional[StudyEvent]:
    try:
        return record_event(user, action_type, **fields)
    except StudyError:
        logger.exception('Failed to log %s event for user %s', action_type, getattr(user, 'pk', None))
        return None


def log_session_start(user, session_id, deck_id=None, *, now: Optional[datetime] = None) -> Optional[StudyEvent]:
    return log_event(user, ActionType.SESSION_START, session_id=session_id, deck_id=deck_id, now=now)


def log_session_end(
    user,
    session_id,
    *,
    study_time: int,
    xp: int,
    streak: int,
    level: int,
    deck_id=None,
    now: Optional[datetime] = None,
) -> Optional[StudyEvent]:
    return log_event(
        user,
        ActionType.SESSION_END,
        session_id=session_id,
        deck_id=deck_id,
        study_time=study_time,
        xp=xp,
        streak=streak,
        level=level,
        now=now,
    )


def log_card_review(
    user,
    *,
    deck_id,
    card_id,
    difficulty: str,
    is_correct: bool,
    study_time: int,
    xp: int,
    session_id=None,
    now: Optional[datetime] = None,
) -> Optional[StudyEvent]:
    return log_event(
        user,
        ActionType.CARD_REVIEW,
        deck_id=deck_id,
        card_id=card_id,
        session_id=session_id,
        difficulty=difficulty,
        is_correct=is_correct,
        study_time=study_time,
        xp=xp,
        now=now,
    )


def log_deck_created(user, deck_id, xp: int, *, now: Optional[datetime] = None) -> Optional[StudyEvent]:
    return log_event(user, ActionType.DECK_CREATED, deck_id=deck_id, xp=xp, now=now)


def log_card_created(user, deck_id, card_id, xp: int, *, now: Optional[datetime] = None) -> Optional[StudyEvent]:
    return log_event(user, ActionType.CARD_CREATED, deck_id=deck_id, card_id=card_id, xp=xp, now=now)


def log_achievement_unlocked(user, achievement_name: str, xp: int, *, now: Optional[datetime] = None) -> Optional[StudyEvent]:
    return log_event(user, ActionType.ACHIEVEMENT_UNLOCKED, achievement_name=achievement_name, xp=xp, now=now)
