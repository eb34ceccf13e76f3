from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any, Dict

from django.contrib.auth import authenticate, login, logout
from django.db import DatabaseError
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from accounts.models import User
from core.errors import NotFoundError, StorageError, StudyError, StudyValidationError
from core.models import Achievement, Card, Deck, StudySession
from core.rewards import get_gamification_config
from core.services.achievements import (
    check_and_unlock,
    get_gamification_profile,
    initialize_achievements,
    list_achievements,
    list_by_category,
    list_unlocked,
)
from core.services.cards import create_card
from core.services.decks import create_deck, get_user_deck
from core.services.export import EXPORT_FILENAME, render_stats_csv
from core.services.review import due_status, get_due_cards, review_card_for_user
from core.services.sessions import end_session, start_session
from core.services.stats import (
    PERIOD_DAY,
    get_deck_performance,
    get_detailed_stats,
    get_performance_by_difficulty,
    get_stats_by_period,
    get_summary,
    get_time_distribution,
)

logger = logging.getLogger(__name__)


def _json_error(message: str, status: int = 400) -> JsonResponse:
    return JsonResponse({'error': message}, status=status)


def _study_error(exc: Exception) -> JsonResponse:
    if isinstance(exc, DatabaseError):
        exc = StorageError(str(exc))
    if isinstance(exc, StudyValidationError):
        return _json_error(str(exc), status=400)
    if isinstance(exc, NotFoundError):
        return _json_error(str(exc), status=404)
    logger.error('Storage failure while handling request: %s', exc)
    return _json_error('storage unavailable', status=503)


def _parse_json(request: HttpRequest) -> Dict[str, Any]:
    try:
        if not request.body:
            return {}
        return json.loads(request.body.decode('utf-8'))
    except json.JSONDecodeError as exc:
        raise ValueError(f'Invalid JSON payload: {exc}')


def _require_user(request: HttpRequest) -> User:
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        raise PermissionError('authentication required')
    return user  # type: ignore[return-value]


def _int_param(value, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise StudyValidationError(f'{name} must be an integer')


def _deck_to_dict(deck: Deck) -> dict:
    return {
        'id': deck.id,
        'name': deck.name,
        'description': deck.description,
        'created_at': deck.created_at.isoformat(),
    }


def _card_to_dict(card: Card, now=None) -> dict:
    data = {
        'id': str(card.id),
        'deck_id': card.deck_id,
        'front_md': card.front_md,
        'back_md': card.back_md,
        'tags': card.tags,
        'review_count': card.review_count,
        'last_reviewed': card.last_reviewed.isoformat() if card.last_reviewed else None,
        'next_review': card.next_review.isoformat() if card.next_review else None,
        'created_at': card.created_at.isoformat(),
        'updated_at': card.updated_at.isoformat(),
    }
    if now is not None:
        data['due_status'] = due_status(card, now)
    return data


def _session_to_dict(session: StudySession) -> dict:
    return {
        'id': str(session.id),
        'deck_id': session.deck_id,
        'started_at': session.started_at.isoformat(),
        'ended_at': session.ended_at.isoformat() if session.ended_at else None,
        'cards_reviewed': session.cards_reviewed,
        'score': session.score,
    }


def _achievement_to_dict(achievement: Achievement) -> dict:
    return {
        'id': achievement.id,
        'name': achievement.name,
        'description': achievement.description,
        'icon': achievement.icon,
        'category': achievement.category,
        'condition': {
            'type': achievement.condition_type,
            'operator': achievement.condition_operator,
            'value': achievement.condition_value,
        },
        'unlocked': achievement.unlocked,
        'unlocked_at': achievement.unlocked_at.isoformat() if achievement.unlocked_at else None,
        'progress': achievement.progress,
        'target': achievement.target,
        'xp_reward': achievement.xp_reward,
    }


@csrf_exempt
@require_http_methods(['POST'])
def auth_register(request: HttpRequest) -> JsonResponse:
    try:
        payload = _parse_json(request)
    except ValueError as exc:
        return _json_error(str(exc))
    email = payload.get('email')
    password = payload.get('password')
    if not email or not password:
        return _json_error('email and password required')
    if User.objects.filter(email=email).exists():
        return _json_error('email already registered')
    user = User.objects.create_user(email=email, password=password, display_name=payload.get('display_name', ''))
    login(request, user)
    return JsonResponse({'id': user.id, 'email': user.email}, status=201)


@csrf_exempt
@require_http_methods(['POST'])
def auth_login(request: HttpRequest) -> JsonResponse:
    try:
        payload = _parse_json(request)
    except ValueError as exc:
        return _json_error(str(exc))
    email = payload.get('email')
    password = payload.get('password')
    if not email or not password:
        return _json_error('email and password required')
    user = authenticate(request, email=email, password=password)
    if user is None:
        return _json_error('invalid credentials', status=401)
    login(request, user)
    return JsonResponse({'id': user.id, 'email': user.email})


@csrf_exempt
@require_http_methods(['POST'])
def auth_logout(request: HttpRequest) -> JsonResponse:
    logout(request)
    return JsonResponse({'success': True})


@csrf_exempt
@require_http_methods(['GET', 'POST'])
def decks_collection(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)

    if request.method == 'GET':
        try:
            decks = list(Deck.objects.for_user(user).order_by('name'))
        except DatabaseError as exc:
            return _study_error(exc)
        return JsonResponse([_deck_to_dict(deck) for deck in decks], safe=False)

    try:
        payload = _parse_json(request)
    except ValueError as exc:
        return _json_error(str(exc))
    try:
        deck = create_deck(user, payload.get('name', ''), payload.get('description', ''))
    except (StudyError, DatabaseError) as exc:
        return _study_error(exc)
    return JsonResponse(_deck_to_dict(deck), status=201)


@csrf_exempt
@require_http_methods(['POST'])
def cards_collection(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        payload = _parse_json(request)
    except ValueError as exc:
        return _json_error(str(exc))
    front_md = payload.get('front_md')
    back_md = payload.get('back_md')
    if payload.get('deck_id') is None or not front_md or not back_md:
        return _json_error('deck_id, front_md and back_md required')
    tags = payload.get('tags') or []
    if not isinstance(tags, list):
        return _json_error('tags must be a list')
    try:
        deck = get_user_deck(user, payload['deck_id'])
        card = create_card(user, deck, front_md, back_md, tags)
    except (StudyError, DatabaseError) as exc:
        return _study_error(exc)
    return JsonResponse(_card_to_dict(card), status=201)


@require_http_methods(['GET'])
def review_due(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    now = timezone.now()
    deck = None
    try:
        deck_id = request.GET.get('deck_id')
        if deck_id:
            deck = get_user_deck(user, deck_id)
        cards = list(get_due_cards(user, deck, now=now))
    except (StudyError, DatabaseError) as exc:
        return _study_error(exc)
    return JsonResponse({
        'due_count': len(cards),
        'cards': [_card_to_dict(card, now) for card in cards],
    })


@csrf_exempt
@require_http_methods(['POST'])
def study_start(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        payload = _parse_json(request)
    except ValueError as exc:
        return _json_error(str(exc))
    deck = None
    try:
        if payload.get('deck_id') is not None:
            deck = get_user_deck(user, payload['deck_id'])
        session = start_session(user, deck)
    except (StudyError, DatabaseError) as exc:
        return _study_error(exc)
    return JsonResponse(_session_to_dict(session), status=201)


@csrf_exempt
@require_http_methods(['POST'])
def study_end(request: HttpRequest, session_id) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        payload = _parse_json(request)
    except ValueError as exc:
        return _json_error(str(exc))
    try:
        cards_reviewed = _int_param(payload.get('cards_reviewed', 0), 'cards_reviewed')
        try:
            score = float(payload.get('score', 0))
        except (TypeError, ValueError):
            raise StudyValidationError('score must be a number')
        session = end_session(user, session_id, cards_reviewed=cards_reviewed, score=score)
    except (StudyError, DatabaseError) as exc:
        return _study_error(exc)
    return JsonResponse(_session_to_dict(session))


@csrf_exempt
@require_http_methods(['POST'])
def study_review(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        payload = _parse_json(request)
    except ValueError as exc:
        return _json_error(str(exc))
    card_id = payload.get('card_id')
    difficulty = payload.get('difficulty')
    is_correct = payload.get('is_correct')
    if card_id is None or difficulty is None or is_correct is None:
        return _json_error('card_id, difficulty and is_correct required')
    if not isinstance(is_correct, bool):
        return _json_error('is_correct must be a boolean')
    try:
        study_time = _int_param(payload.get('study_time', 0), 'study_time')
        outcome = review_card_for_user(
            user=user,
            card_id=card_id,
            difficulty=difficulty,
            is_correct=is_correct,
            study_time=study_time,
            session_id=payload.get('session_id'),
        )
    except (StudyError, DatabaseError) as exc:
        return _study_error(exc)
    return JsonResponse({
        'card': _card_to_dict(outcome.card),
        'review_count': outcome.schedule.review_count,
        'interval_days': outcome.schedule.interval_days,
        'next_review': outcome.schedule.next_review.isoformat(),
        'xp': outcome.xp,
        'logged': outcome.event is not None,
    })


@require_http_methods(['GET'])
def stats_summary(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        summary = get_summary(user)
    except DatabaseError as exc:
        return _study_error(exc)
    return JsonResponse(asdict(summary))


@require_http_methods(['GET'])
def stats_period(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    period = request.GET.get('period', PERIOD_DAY)
    try:
        days = _int_param(request.GET.get('days', get_gamification_config().default_period_days), 'days')
        rows = get_stats_by_period(user, period, days)
    except (StudyError, DatabaseError) as exc:
        return _study_error(exc)
    return JsonResponse([asdict(row) for row in rows], safe=False)


@require_http_methods(['GET'])
def stats_difficulty(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        rows = get_performance_by_difficulty(user)
    except DatabaseError as exc:
        return _study_error(exc)
    return JsonResponse([asdict(row) for row in rows], safe=False)


@require_http_methods(['GET'])
def stats_decks(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        rows = get_deck_performance(user)
    except DatabaseError as exc:
        return _study_error(exc)
    return JsonResponse([asdict(row) for row in rows], safe=False)


@require_http_methods(['GET'])
def stats_time_distribution(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        distribution = get_time_distribution(user)
    except DatabaseError as exc:
        return _study_error(exc)
    return JsonResponse(asdict(distribution))


@require_http_methods(['GET'])
def stats_detailed(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        detailed = get_detailed_stats(user)
    except DatabaseError as exc:
        return _study_error(exc)
    return JsonResponse(asdict(detailed))


@require_http_methods(['GET'])
def stats_export(request: HttpRequest) -> HttpResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        content = render_stats_csv(user)
    except DatabaseError as exc:
        return _study_error(exc)
    response = HttpResponse(content, content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{EXPORT_FILENAME}"'
    return response


@require_http_methods(['GET'])
def gamification_stats(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        profile = get_gamification_profile(user)
    except DatabaseError as exc:
        return _study_error(exc)
    return JsonResponse({
        'total_xp': profile.total_xp,
        'level': profile.level,
        'current_level_xp': profile.current_level_xp,
        'next_level_xp': profile.next_level_xp,
        'study_streak': profile.study_streak,
        'total_cards_created': profile.total_cards_created,
        'total_cards_reviewed': profile.total_cards_reviewed,
        'total_study_sessions': profile.total_study_sessions,
        'achievements_unlocked': profile.achievements_unlocked,
        'badges': [_achievement_to_dict(badge) for badge in profile.badges],
    })


@require_http_methods(['GET'])
def achievements_collection(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        achievements = list(list_achievements(user))
    except DatabaseError as exc:
        return _study_error(exc)
    return JsonResponse([_achievement_to_dict(a) for a in achievements], safe=False)


@require_http_methods(['GET'])
def achievements_unlocked(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        achievements = list(list_unlocked(user))
    except DatabaseError as exc:
        return _study_error(exc)
    return JsonResponse([_achievement_to_dict(a) for a in achievements], safe=False)


@require_http_methods(['GET'])
def achievements_by_category(request: HttpRequest, category: str) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        achievements = list(list_by_category(user, category))
    except (StudyError, DatabaseError) as exc:
        return _study_error(exc)
    return JsonResponse([_achievement_to_dict(a) for a in achievements], safe=False)


@csrf_exempt
@require_http_methods(['POST'])
def achievements_check(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        unlocked = check_and_unlock(user)
    except DatabaseError as exc:
        return _study_error(exc)
    return JsonResponse({'unlocked': [_achievement_to_dict(a) for a in unlocked]})


@csrf_exempt
@require_http_methods(['POST'])
def achievements_initialize(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _json_error(str(exc), status=401)
    try:
        created = initialize_achievements(user)
    except (StudyError, DatabaseError) as exc:
        return _study_error(exc)
    return JsonResponse({'created': len(created)}, status=201 if created else 200)
