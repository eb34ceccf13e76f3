import json

import pytest
from django.db import DatabaseError

from core.models import ActionType, StudyEvent, StudySession

pytestmark = pytest.mark.django_db


def _post(client, url, payload=None):
    return client.post(url, data=json.dumps(payload or {}), content_type='application/json')


@pytest.mark.parametrize(
    'method,url',
    [
        ('get', '/api/v1/decks/'),
        ('get', '/api/v1/review/due'),
        ('post', '/api/v1/study/review'),
        ('get', '/api/v1/stats/summary'),
        ('get', '/api/v1/stats/export'),
        ('get', '/api/v1/achievements/'),
        ('post', '/api/v1/achievements/check'),
    ],
)
def test_endpoints_require_authentication(api_client, method, url):
    response = getattr(api_client, method)(url)
    assert response.status_code == 401


def test_register_login_logout(api_client):
    response = _post(api_client, '/api/v1/auth/register', {'email': 'ana@example.com', 'password': 'secret-pass'})
    assert response.status_code == 201
    assert _post(api_client, '/api/v1/auth/logout').status_code == 200
    assert api_client.get('/api/v1/stats/summary').status_code == 401

    bad = _post(api_client, '/api/v1/auth/login', {'email': 'ana@example.com', 'password': 'nope'})
    assert bad.status_code == 401
    good = _post(api_client, '/api/v1/auth/login', {'email': 'ana@example.com', 'password': 'secret-pass'})
    assert good.status_code == 200
    assert api_client.get('/api/v1/achievements/').json()[0]['name'] == 'First Step'


def test_deck_card_review_cycle(api_client, user_factory):
    user = user_factory()
    api_client.force_login(user)

    deck = _post(api_client, '/api/v1/decks/', {'name': 'Physics'})
    assert deck.status_code == 201
    deck_id = deck.json()['id']
    assert _post(api_client, '/api/v1/decks/', {'name': 'Physics'}).status_code == 400

    card = _post(api_client, '/api/v1/cards/', {'deck_id': deck_id, 'front_md': 'F = ?', 'back_md': 'ma'})
    assert card.status_code == 201
    card_id = card.json()['id']

    due = api_client.get('/api/v1/review/due', {'deck_id': deck_id})
    assert due.json()['due_count'] == 1
    assert due.json()['cards'][0]['due_status'] == 'new'

    session = _post(api_client, '/api/v1/study/start', {'deck_id': deck_id})
    assert session.status_code == 201
    session_id = session.json()['id']

    review = _post(
        api_client,
        '/api/v1/study/review',
        {'card_id': card_id, 'difficulty': 'easy', 'is_correct': True, 'study_time': 8, 'session_id': session_id},
    )
    assert review.status_code == 200
    body = review.json()
    assert body['review_count'] == 1
    assert body['interval_days'] == 3
    assert body['xp'] == 2
    assert body['logged'] is True

    end = _post(api_client, f'/api/v1/study/{session_id}/end', {'cards_reviewed': 1, 'score': 100})
    assert end.status_code == 200
    assert end.json()['ended_at'] is not None
    assert _post(api_client, f'/api/v1/study/{session_id}/end', {'cards_reviewed': 1}).status_code == 400

    assert api_client.get('/api/v1/review/due').json()['due_count'] == 0

    summary = api_client.get('/api/v1/stats/summary').json()
    assert summary['total_sessions'] == 1
    assert summary['total_cards'] == 1
    assert summary['decks_created'] == 1
    assert summary['cards_created'] == 1
    assert summary['average_accuracy'] == 100.0

    expected = ['First Step', 'Sharpshooter', 'Perfectionist']
    check = _post(api_client, '/api/v1/achievements/check')
    assert [a['name'] for a in check.json()['unlocked']] == expected
    unlocked = api_client.get('/api/v1/achievements/unlocked').json()
    assert [a['name'] for a in unlocked] == expected


def test_review_validation_and_isolation(api_client, user_factory, card_factory):
    foreign = card_factory()
    user = user_factory()
    api_client.force_login(user)

    missing = _post(api_client, '/api/v1/study/review', {'card_id': str(foreign.id), 'difficulty': 'good', 'is_correct': True})
    assert missing.status_code == 404
    assert _post(api_client, '/api/v1/study/review', {'card_id': str(foreign.id)}).status_code == 400
    bad_difficulty = _post(
        api_client, '/api/v1/study/review', {'card_id': str(foreign.id), 'difficulty': 'meh', 'is_correct': True}
    )
    assert bad_difficulty.status_code == 400
    assert not StudyEvent.objects.filter(action_type=ActionType.CARD_REVIEW).exists()

    foreign_deck = _post(api_client, '/api/v1/cards/', {'deck_id': foreign.deck_id, 'front_md': 'a', 'back_md': 'b'})
    assert foreign_deck.status_code == 404


def test_stats_views(api_client, user_factory, event_factory):
    user = user_factory()
    api_client.force_login(user)
    event_factory(user=user, deck_id=77, difficulty='easy', is_correct=True, study_time=30)
    event_factory(user=user, deck_id=77, difficulty='hard', is_correct=False, study_time=10)

    period = api_client.get('/api/v1/stats/period', {'period': 'month', 'days': 7})
    assert period.status_code == 200
    assert period.json()[0]['period'] == 'month'
    assert period.json()[0]['cards_reviewed'] == 2
    assert api_client.get('/api/v1/stats/period').json()[0]['period'] == 'day'
    assert api_client.get('/api/v1/stats/period', {'period': 'year'}).status_code == 400
    assert api_client.get('/api/v1/stats/period', {'days': 'soon'}).status_code == 400

    difficulty = api_client.get('/api/v1/stats/difficulty').json()
    assert [(row['difficulty'], row['percentage']) for row in difficulty] == [('easy', 50.0), ('hard', 50.0)]

    decks = api_client.get('/api/v1/stats/decks').json()
    assert decks[0]['deck_name'] == '77'
    assert decks[0]['accuracy'] == 50.0

    distribution = api_client.get('/api/v1/stats/time-distribution').json()
    assert distribution['total_study_time'] == 40

    detailed = api_client.get('/api/v1/stats/detailed').json()
    assert detailed['summary']['total_cards'] == 2
    assert len(detailed['weekly_stats']) == 1

    export = api_client.get('/api/v1/stats/export')
    assert export.status_code == 200
    assert export['Content-Type'].startswith('text/csv')
    assert 'flashcard_stats.csv' in export['Content-Disposition']


def test_achievement_views(api_client, user_factory):
    user = user_factory()
    api_client.force_login(user)

    initialize = _post(api_client, '/api/v1/achievements/initialize')
    assert initialize.status_code == 200
    assert initialize.json()['created'] == 0

    accuracy = api_client.get('/api/v1/achievements/category/accuracy').json()
    assert [a['name'] for a in accuracy] == ['Sharpshooter', 'Perfectionist']
    assert accuracy[0]['condition'] == {'type': 'session_accuracy', 'operator': '>=', 'value': 80}
    assert api_client.get('/api/v1/achievements/category/social').status_code == 400

    profile = api_client.get('/api/v1/gamification/stats').json()
    assert profile['level'] == 1
    assert profile['next_level_xp'] == 1000
    assert profile['badges'] == []


@pytest.mark.parametrize(
    'target,url',
    [
        ('list_achievements', '/api/v1/achievements/'),
        ('list_unlocked', '/api/v1/achievements/unlocked'),
        ('list_by_category', '/api/v1/achievements/category/study'),
    ],
)
def test_achievement_lists_report_storage_failures(api_client, user_factory, monkeypatch, target, url):
    api_client.force_login(user_factory())

    def broken(*args, **kwargs):
        raise DatabaseError('connection lost')

    monkeypatch.setattr(f'api.views.{target}', broken)
    response = api_client.get(url)
    assert response.status_code == 503
    assert response.json() == {'error': 'storage unavailable'}


def test_end_session_reports_storage_failure(api_client, user_factory, monkeypatch):
    user = user_factory()
    api_client.force_login(user)
    session_id = _post(api_client, '/api/v1/study/start').json()['id']

    def broken_save(self, *args, **kwargs):
        raise DatabaseError('disk full')

    monkeypatch.setattr(StudySession, 'save', broken_save)
    response = _post(api_client, f'/api/v1/study/{session_id}/end', {'cards_reviewed': 3})
    assert response.status_code == 503
