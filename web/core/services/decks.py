from __future__ import annotations

from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from ..errors import NotFoundError, StudyValidationError
from ..models import Deck
from ..rewards import GamificationConfig, get_gamification_config
from .events import log_deck_created


def create_deck(user, name: str, description: str = '', *, config: Optional[GamificationConfig] = None) -> Deck:
    name = (name or '').strip()
    if not name:
        raise StudyValidationError('deck name required')
    config = config or get_gamification_config()
    try:
        with transaction.atomic():
            deck = Deck.objects.create(user=user, name=name, description=description, created_at=timezone.now())
    except IntegrityError as exc:
        raise StudyValidationError(f'deck {name!r} already exists') from exc
    log_deck_created(user, deck.id, config.deck_created_xp)
    return deck


def get_user_deck(user, deck_id) -> Deck:
    try:
        return Deck.objects.get(id=int(deck_id), user=user)
    except (TypeError, ValueError) as exc:
        raise StudyValidationError(f'malformed deck id: {deck_id!r}') from exc
    except Deck.DoesNotExist as exc:
        raise NotFoundError(f'deck {deck_id} not found') from exc


def resolve_deck_name(user, deck_id) -> str:
    return get_user_deck(user, deck_id).name
