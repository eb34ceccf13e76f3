import pytest
from django.test import Client

from .factories import (
    CardFactory,
    DeckFactory,
    StudyEventFactory,
    StudySessionFactory,
    UserFactory,
)


@pytest.fixture
def user_factory():
    return UserFactory


@pytest.fixture
def deck_factory():
    return DeckFactory


@pytest.fixture
def card_factory():
    return CardFactory


@pytest.fixture
def session_factory():
    return StudySessionFactory


@pytest.fixture
def event_factory():
    return StudyEventFactory


@pytest.fixture
def api_client():
    return Client()
