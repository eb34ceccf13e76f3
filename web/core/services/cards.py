from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.utils import timezone

from ..errors import NotFoundError, StorageError, StudyValidationError
from ..models import Card, Deck
from ..rewards import GamificationConfig, get_gamification_config
from .events import log_card_created


@dataclass(frozen=True)
class ReviewState:
    review_count: int
    last_reviewed: Optional[datetime]
    next_review: Optional[datetime]


def create_card(
    user,
    deck: Deck,
    front_md: str,
    back_md: str,
    tags: Iterable[str] = (),
    *,
    config: Optional[GamificationConfig] = None,
) -> Card:
    if deck.user_id != user.pk:
        raise NotFoundError(f'deck {deck.pk} not found')
    config = config or get_gamification_config()
    card = Card.objects.create(
        user=user,
        deck=deck,
        front_md=front_md,
        back_md=back_md,
        tags=[str(tag).strip() for tag in tags if str(tag).strip()],
    )
    log_card_created(user, deck.id, card.id, config.card_created_xp)
    return card


def get_user_card(user, card_id, *, for_update: bool = False) -> Card:
    qs = Card.objects.select_related('deck')
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(id=card_id, user=user)
    except (ValueError, DjangoValidationError) as exc:
        raise StudyValidationError(f'malformed card id: {card_id!r}') from exc
    except Card.DoesNotExist as exc:
        raise NotFoundError(f'card {card_id} not found') from exc


def get_card_review_state(user, card_id) -> ReviewState:
    card = get_user_card(user, card_id)
    return ReviewState(
        review_count=card.review_count,
        last_reviewed=card.last_reviewed,
        next_review=card.next_review,
    )


def set_card_review_state(user, card_id, state: ReviewState, *, now: Optional[datetime] = None) -> None:
    if state.review_count < 0:
        raise StudyValidationError('review_count must be >= 0')
    card = get_user_card(user, card_id)
    card.review_count = state.review_count
    card.last_reviewed = state.last_reviewed
    card.next_review = state.next_review
    card.updated_at = now or timezone.now()
    try:
        card.save(update_fields=['review_count', 'last_reviewed', 'next_review', 'updated_at'])
    except DatabaseError as exc:
        raise StorageError(f'failed to update review state for card {card.pk}') from exc
