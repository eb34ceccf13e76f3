from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.db.models import Sum
from django.utils import timezone

from ..errors import NotFoundError, StorageError, StudyValidationError
from ..models import ActionType, Deck, StudyEvent, StudySession
from ..rewards import GamificationConfig, get_gamification_config, level_for_xp
from .events import log_session_end, log_session_start
from .stats import compute_study_streak, get_summary

logger = logging.getLogger(__name__)


def start_session(user, deck: Optional[Deck] = None, *, now: Optional[datetime] = None) -> StudySession:
    now = now or timezone.now()
    try:
        session = StudySession.objects.create(user=user, deck=deck, started_at=now)
    except DatabaseError as exc:
        raise StorageError(f'failed to start session for user {user.pk}') from exc
    log_session_start(user, session.id, deck.id if deck else None, now=now)
    return session


def get_user_session(user, session_id) -> StudySession:
    try:
        return StudySession.objects.get(id=session_id, user=user)
    except (ValueError, DjangoValidationError) as exc:
        raise StudyValidationError(f'malformed session id: {session_id!r}') from exc
    except StudySession.DoesNotExist as exc:
        raise NotFoundError(f'session {session_id} not found') from exc


def _session_study_time(user, session: StudySession, config: GamificationConfig) -> int:
    logged = (
        StudyEvent.objects.for_user(user)
        .filter(session_id=session.id, action_type=ActionType.CARD_REVIEW)
        .aggregate(total=Sum('study_time'))['total']
    )
    if logged:
        return logged
    return session.cards_reviewed * config.session_seconds_per_card


def end_session(
    user,
    session_id,
    *,
    cards_reviewed: int,
    score: float = 0,
    now: Optional[datetime] = None,
    config: Optional[GamificationConfig] = None,
) -> StudySession:
    if cards_reviewed < 0:
        raise StudyValidationError('cards_reviewed must be >= 0')
    config = config or get_gamification_config()
    now = now or timezone.now()
    session = get_user_session(user, session_id)
    if not session.is_open:
        raise StudyValidationError(f'session {session.id} already ended')

    session.ended_at = now
    session.cards_reviewed = cards_reviewed
    session.score = score
    try:
        session.save(update_fields=['ended_at', 'cards_reviewed', 'score'])
    except DatabaseError as exc:
        raise StorageError(f'failed to end session {session.id}') from exc

    try:
        study_time = _session_study_time(user, session, config)
        xp = cards_reviewed * config.session_xp_per_card
        streak = compute_study_streak(user, now=now)
        level = level_for_xp(get_summary(user).total_xp + xp, config)
    except DatabaseError:
        logger.exception('Could not compute rewards for session %s; skipping session_end event', session.id)
        return session

    log_session_end(
        user,
        session.id,
        deck_id=session.deck_id,
        study_time=study_time,
        xp=xp,
        streak=streak,
        level=level,
        now=now,
    )
    return session
