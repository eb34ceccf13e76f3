import logging
import uuid
from datetime import datetime, timezone as dt_timezone

import pytest
from django.db import DatabaseError

from core.errors import StorageError, StudyValidationError
from core.models import ActionType, StudyEvent
from core.services.events import log_card_review, log_event, record_event

pytestmark = pytest.mark.django_db


def test_record_event_stamps_bucket_columns(user_factory):
    user = user_factory()
    moment = datetime(2024, 12, 30, 8, 15, tzinfo=dt_timezone.utc)
    card_id = uuid.uuid4()

    event = record_event(
        user,
        ActionType.CARD_REVIEW,
        deck_id=3,
        card_id=str(card_id),
        difficulty='good',
        is_correct=True,
        study_time=12,
        xp=4,
        now=moment,
    )

    event.refresh_from_db()
    assert event.created_at == moment
    assert event.calendar_date.isoformat() == '2024-12-30'
    # ISO week 1 of 2025 starts on Monday 2024-12-30.
    assert (event.iso_year, event.iso_week) == (2025, 1)
    assert (event.year, event.month) == (2024, 12)
    assert event.card_id == card_id
    assert event.deck_id == 3


def test_record_event_rejects_unknown_values(user_factory):
    user = user_factory()
    with pytest.raises(StudyValidationError):
        record_event(user, 'card_flipped')
    with pytest.raises(StudyValidationError):
        record_event(user, ActionType.CARD_REVIEW, difficulty='trivial')
    with pytest.raises(StudyValidationError):
        record_event(user, ActionType.CARD_REVIEW, study_time=-1)
    assert not StudyEvent.objects.for_user(user).exists()


def test_events_cannot_be_updated(event_factory):
    event = event_factory()
    event.xp = 100
    with pytest.raises(ValueError):
        event.save()


def test_record_event_raises_storage_error(user_factory, monkeypatch):
    user = user_factory()

    def broken_save(self, *args, **kwargs):
        raise DatabaseError('connection lost')

    monkeypatch.setattr(StudyEvent, 'save', broken_save)
    with pytest.raises(StorageError):
        record_event(user, ActionType.SESSION_START)


def test_log_event_swallows_failures(user_factory, monkeypatch, caplog):
    user = user_factory()

    def broken_save(self, *args, **kwargs):
        raise DatabaseError('connection lost')

    monkeypatch.setattr(StudyEvent, 'save', broken_save)
    with caplog.at_level(logging.ERROR, logger='core.services.events'):
        assert log_event(user, ActionType.SESSION_START) is None
        assert log_event(user, 'not_an_action') is None
    assert 'Failed to log session_start event' in caplog.text


def test_log_card_review_writes_typed_fields(user_factory):
    user = user_factory()
    card_id = uuid.uuid4()
    event = log_card_review(
        user,
        deck_id=7,
        card_id=card_id,
        difficulty='hard',
        is_correct=False,
        study_time=20,
        xp=3,
    )
    assert event is not None
    stored = StudyEvent.objects.get(pk=event.pk)
    assert stored.action_type == ActionType.CARD_REVIEW
    assert stored.difficulty == 'hard'
    assert stored.is_correct is False
    assert stored.study_time == 20
