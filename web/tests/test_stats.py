import logging
from datetime import datetime, timedelta, timezone as dt_timezone

import pytest

from core.errors import StudyValidationError
from core.models import ActionType
from core.services.stats import (
    TimeDistribution,
    compute_study_streak,
    get_deck_performance,
    get_detailed_stats,
    get_performance_by_difficulty,
    get_stats_by_period,
    get_summary,
    get_time_distribution,
)

pytestmark = pytest.mark.django_db

NOW = datetime(2024, 5, 15, 16, 0, tzinfo=dt_timezone.utc)


def test_summary_for_empty_log(user_factory):
    summary = get_summary(user_factory())
    assert summary.total_study_time == 0
    assert summary.total_sessions == 0
    assert summary.total_cards == 0
    assert summary.average_accuracy == 0
    assert summary.study_streak == 0
    assert summary.current_level == 1


def test_views_for_empty_log(user_factory):
    user = user_factory()
    assert get_time_distribution(user) == TimeDistribution()
    assert get_performance_by_difficulty(user) == []
    assert get_deck_performance(user) == []
    assert get_stats_by_period(user, 'week', 90) == []


def test_summary_counts_and_accuracy(user_factory, event_factory):
    user = user_factory()
    event_factory(user=user, action_type=ActionType.SESSION_START, created_at=NOW - timedelta(hours=2))
    event_factory(user=user, difficulty='good', is_correct=True, study_time=10, xp=4, created_at=NOW - timedelta(hours=2))
    event_factory(user=user, difficulty='hard', is_correct=True, study_time=20, xp=6, created_at=NOW - timedelta(hours=2))
    event_factory(user=user, difficulty='again', is_correct=False, study_time=5, xp=0, created_at=NOW - timedelta(hours=2))
    event_factory(user=user, action_type=ActionType.DECK_CREATED, deck_id=1, xp=25, created_at=NOW - timedelta(hours=3))
    event_factory(
        user=user,
        action_type=ActionType.SESSION_END,
        study_time=90,
        xp=15,
        streak=2,
        level=1,
        created_at=NOW - timedelta(hours=1),
    )

    summary = get_summary(user)
    assert summary.total_sessions == 1
    assert summary.total_cards == 3
    assert summary.total_study_time == 125
    assert summary.total_xp == 50
    assert summary.average_accuracy == pytest.approx(200 / 3)
    assert summary.study_streak == 2
    assert summary.decks_created == 1


def test_summary_is_scoped_to_user(user_factory, event_factory):
    user = user_factory()
    event_factory(user=user_factory(), is_correct=True, xp=5)
    assert get_summary(user).total_cards == 0


def test_difficulty_breakdown_percentages(user_factory, event_factory):
    user = user_factory()
    for _ in range(3):
        event_factory(user=user, difficulty='easy', is_correct=True, study_time=4)
    event_factory(user=user, difficulty='hard', is_correct=False, study_time=10)

    rows = {row.difficulty: row for row in get_performance_by_difficulty(user)}
    assert [row.difficulty for row in get_performance_by_difficulty(user)] == ['easy', 'hard']
    assert rows['easy'].count == 3
    assert rows['easy'].percentage == pytest.approx(75.0)
    assert rows['easy'].average_time == pytest.approx(4.0)
    assert rows['hard'].percentage == pytest.approx(25.0)


def test_time_distribution_bands(user_factory, event_factory):
    user = user_factory()
    for hour in (7, 14, 20, 2):
        event_factory(user=user, difficulty='good', is_correct=True, study_time=30, created_at=NOW.replace(hour=hour))
    event_factory(user=user, action_type=ActionType.SESSION_END, study_time=45, created_at=NOW)
    event_factory(user=user, action_type=ActionType.SESSION_END, study_time=75, created_at=NOW)

    distribution = get_time_distribution(user)
    assert (distribution.morning, distribution.afternoon, distribution.evening, distribution.night) == (1, 1, 1, 1)
    assert distribution.total_study_time == 120
    assert distribution.longest_session == 75
    assert distribution.shortest_session == 45
    assert distribution.average_time == 60


def test_time_distribution_without_sessions(user_factory, event_factory):
    user = user_factory()
    event_factory(user=user, difficulty='good', is_correct=True, study_time=30, created_at=NOW.replace(hour=9))
    distribution = get_time_distribution(user)
    assert distribution.morning == 1
    assert distribution.average_time == 0
    assert distribution.longest_session == 0


def test_stats_by_day_are_sorted_and_windowed(user_factory, event_factory):
    user = user_factory()
    event_factory(user=user, difficulty='good', is_correct=True, study_time=10, xp=4, created_at=NOW - timedelta(days=1))
    event_factory(user=user, difficulty='good', is_correct=False, study_time=10, xp=2, created_at=NOW - timedelta(days=1))
    event_factory(user=user, action_type=ActionType.SESSION_START, created_at=NOW - timedelta(days=3))
    event_factory(user=user, difficulty='easy', is_correct=True, created_at=NOW - timedelta(days=40))

    rows = get_stats_by_period(user, 'day', 30, now=NOW)
    assert [row.date for row in rows] == ['2024-05-12', '2024-05-14']
    assert rows[0].sessions == 1
    assert rows[1].cards_reviewed == 2
    assert rows[1].accuracy == pytest.approx(50.0)
    assert rows[1].study_time == 20
    assert rows[1].xp == 6


def test_stats_by_week_and_month_labels(user_factory, event_factory):
    user = user_factory()
    event_factory(user=user, is_correct=True, created_at=datetime(2024, 12, 31, 12, tzinfo=dt_timezone.utc))
    event_factory(user=user, is_correct=True, created_at=datetime(2025, 1, 2, 12, tzinfo=dt_timezone.utc))
    event_factory(user=user, is_correct=True, created_at=datetime(2024, 12, 2, 12, tzinfo=dt_timezone.utc))
    now = datetime(2025, 1, 3, tzinfo=dt_timezone.utc)

    weeks = get_stats_by_period(user, 'week', 60, now=now)
    assert [row.date for row in weeks] == ['2024-W49', '2025-W01']
    assert weeks[1].cards_reviewed == 2

    months = get_stats_by_period(user, 'month', 60, now=now)
    assert [row.date for row in months] == ['2024-12', '2025-01']
    assert months[0].cards_reviewed == 2


def test_stats_by_period_rejects_bad_input(user_factory):
    user = user_factory()
    with pytest.raises(StudyValidationError):
        get_stats_by_period(user, 'year', 30)
    with pytest.raises(StudyValidationError):
        get_stats_by_period(user, 'day', -1)
    assert get_stats_by_period(user, 'day', 30) == []


def test_deck_performance_resolves_names_and_falls_back(user_factory, deck_factory, event_factory, caplog):
    user = user_factory()
    deck = deck_factory(user=user, name='Biology')
    event_factory(user=user, deck_id=deck.id, is_correct=True, study_time=60, created_at=NOW - timedelta(days=1))
    event_factory(user=user, deck_id=deck.id, action_type=ActionType.SESSION_START, created_at=NOW - timedelta(days=1))
    event_factory(user=user, deck_id=987654, is_correct=False, study_time=5, created_at=NOW)

    with caplog.at_level(logging.WARNING, logger='core.services.stats'):
        rows = get_deck_performance(user)

    assert [row.deck_name for row in rows] == ['987654', 'Biology']
    biology = rows[1]
    assert biology.sessions == 1
    assert biology.cards_reviewed == 1
    assert biology.accuracy == pytest.approx(100.0)
    assert biology.study_time == 60
    assert 'Falling back to raw id for deck 987654' in caplog.text


def test_deck_performance_with_custom_resolver(user_factory, event_factory):
    user = user_factory()
    event_factory(user=user, deck_id=5, is_correct=True)
    rows = get_deck_performance(user, resolve_name=lambda deck_id: f'deck-{deck_id}')
    assert rows[0].deck_name == 'deck-5'


def test_study_streak_counts_consecutive_days(user_factory, event_factory):
    user = user_factory()
    for days_ago in (0, 1, 2, 4):
        event_factory(user=user, is_correct=True, created_at=NOW - timedelta(days=days_ago))
    assert compute_study_streak(user, now=NOW) == 3


def test_study_streak_survives_until_first_review_of_the_day(user_factory, event_factory):
    user = user_factory()
    for days_ago in (1, 2):
        event_factory(user=user, is_correct=True, created_at=NOW - timedelta(days=days_ago))
    assert compute_study_streak(user, now=NOW) == 2
    assert compute_study_streak(user, now=NOW + timedelta(days=2)) == 0


def test_detailed_stats_bundle(user_factory, event_factory):
    user = user_factory()
    event_factory(user=user, difficulty='easy', is_correct=True, created_at=NOW - timedelta(days=10))
    detailed = get_detailed_stats(user, now=NOW)
    assert detailed.summary.total_cards == 1
    assert detailed.weekly_stats == []
    assert len(detailed.monthly_stats) == 1
    assert detailed.performance_by_difficulty[0].difficulty == 'easy'
