from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from django.conf import settings
from django.db import models
from django.utils import timezone

from .achievements import AchievementCategory, ConditionOperator, ConditionType


class UserScopedQuerySet(models.QuerySet):
    def for_user(self, user: settings.AUTH_USER_MODEL) -> "UserScopedQuerySet":
        return self.filter(user=user)


class Deck(models.Model):
    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='decks')
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    objects = UserScopedQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['user', 'name'], name='unique_deck_name_per_user'),
        ]
        indexes = [
            models.Index(fields=['user', 'name'], name='deck_user_name_idx'),
        ]
        ordering = ['name']

    def __str__(self) -> str:
        return self.name


class Card(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='cards')
    deck = models.ForeignKey(Deck, on_delete=models.CASCADE, related_name='cards')
    front_md = models.TextField()
    back_md = models.TextField()
    tags = models.JSONField(default=list, blank=True)
    review_count = models.PositiveIntegerField(default=0)
    last_reviewed = models.DateTimeField(null=True, blank=True)
    next_review = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    objects = UserScopedQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=['user', 'deck'], name='card_user_deck_idx'),
            models.Index(fields=['user', 'next_review'], name='card_user_next_review_idx'),
        ]
        ordering = ['-updated_at']

    def __str__(self) -> str:
        return self.front_md[:40]

    def is_due(self, now: Optional[datetime] = None) -> bool:
        if self.next_review is None:
            return True
        now = now or timezone.now()
        return self.next_review <= now


class StudySession(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='study_sessions')
    deck = models.ForeignKey(Deck, null=True, blank=True, on_delete=models.SET_NULL, related_name='study_sessions')
    started_at = models.DateTimeField(default=timezone.now)
    ended_at = models.DateTimeField(null=True, blank=True)
    cards_reviewed = models.PositiveIntegerField(default=0)
    score = models.FloatField(default=0)

    objects = UserScopedQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=['user', 'started_at'], name='session_user_started_idx'),
        ]
        ordering = ['-started_at']

    @property
    def is_open(self) -> bool:
        return self.ended_at is None


class ActionType(models.TextChoices):
    SESSION_START = 'session_start', 'Session start'
    SESSION_END = 'session_end', 'Session end'
    CARD_REVIEW = 'card_review', 'Card review'
    DECK_CREATED = 'deck_created', 'Deck created'
    CARD_CREATED = 'card_created', 'Card created'
    ACHIEVEMENT_UNLOCKED = 'achievement_unlocked', 'Achievement unlocked'


class Difficulty(models.TextChoices):
    AGAIN = 'again', 'Again'
    EASY = 'easy', 'Easy'
    GOOD = 'good', 'Good'
    HARD = 'hard', 'Hard'


class StudyEvent(models.Model):
    """
    One row per study action. Rows are written once by the event log and never updated.

    ``calendar_date``, ``iso_year``, ``iso_week``, ``month`` and ``year`` are copied from
    ``created_at`` when the row is stamped so period queries can group on plain columns.
    """

    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='study_events')
    deck_id = models.BigIntegerField(null=True, blank=True)
    card_id = models.UUIDField(null=True, blank=True)
    session_id = models.UUIDField(null=True, blank=True)
    action_type = models.CharField(max_length=32, choices=ActionType.choices)
    difficulty = models.CharField(max_length=10, choices=Difficulty.choices, null=True, blank=True)
    is_correct = models.BooleanField(null=True, blank=True)
    study_time = models.PositiveIntegerField(null=True, blank=True)
    xp = models.IntegerField(null=True, blank=True)
    streak = models.PositiveIntegerField(null=True, blank=True)
    level = models.PositiveIntegerField(null=True, blank=True)
    achievement_name = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField()
    calendar_date = models.DateField()
    iso_year = models.PositiveSmallIntegerField()
    iso_week = models.PositiveSmallIntegerField()
    month = models.PositiveSmallIntegerField()
    year = models.PositiveSmallIntegerField()

    objects = UserScopedQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=['user', 'created_at'], name='event_user_created_idx'),
            models.Index(fields=['user', 'action_type'], name='event_user_action_idx'),
            models.Index(fields=['user', 'deck_id'], name='event_user_deck_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.action_type} @ {self.created_at.isoformat() if self.created_at else '?'}"

    def stamp(self, moment: datetime) -> None:
        local = timezone.localtime(moment)
        iso_year, iso_week, _ = local.isocalendar()
        self.created_at = moment
        self.calendar_date = local.date()
        self.iso_year = iso_year
        self.iso_week = iso_week
        self.month = local.month
        self.year = local.year

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError('study events are immutable')
        super().save(*args, **kwargs)


class Achievement(models.Model):
    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='achievements')
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    icon = models.CharField(max_length=16, blank=True)
    category = models.CharField(max_length=32, choices=AchievementCategory.choices)
    condition_type = models.CharField(max_length=32, choices=ConditionType.choices)
    condition_operator = models.CharField(max_length=2, choices=ConditionOperator.choices)
    condition_value = models.IntegerField()
    unlocked = models.BooleanField(default=False)
    unlocked_at = models.DateTimeField(null=True, blank=True)
    progress = models.IntegerField(default=0)
    target = models.IntegerField()
    xp_reward = models.IntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    objects = UserScopedQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['user', 'name'], name='unique_achievement_per_user'),
        ]
        indexes = [
            models.Index(fields=['user', 'unlocked'], name='achievement_user_unlocked_idx'),
            models.Index(fields=['user', 'category'], name='achievement_user_category_idx'),
        ]
        ordering = ['id']

    def __str__(self) -> str:
        state = 'unlocked' if self.unlocked else f"{self.progress}/{self.target}"
        return f"{self.name} ({state})"
