# flashcards/tests/conftest.py
import pytest
from rest_framework.test import APIClient

from flashcards.models import Flashcard, GenerationSession, Source

INPUT_TEXT = "Photosynthesis converts light energy into chemical energy. " * 30


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(username="alice", password="pw-alice")


@pytest.fixture
def other_user(django_user_model):
    return django_user_model.objects.create_user(username="bob", password="pw-bob")


@pytest.fixture
def api_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def make_session():
    def _make(owner, **kwargs):
        kwargs.setdefault("input_text", INPUT_TEXT)
        kwargs.setdefault("model", "openai/gpt-4o-mini")
        return GenerationSession.objects.create(user_id=str(owner.pk), **kwargs)
    return _make


@pytest.fixture
def make_candidate():
    def _make(session, front="Q?", back="A.", **kwargs):
        kwargs.setdefault("user_id", session.user_id)
        return Flashcard.objects.create(
            ai_session=session,
            origin_session=session,
            source=Source.AI,
            front=front,
            back=back,
            prompt="tests one concept",
            **kwargs,
        )
    return _make


@pytest.fixture
def make_card():
    def _make(owner, front="Manual Q", back="Manual A", **kwargs):
        return Flashcard.objects.create(
            user_id=str(owner.pk), source=Source.MANUAL, front=front, back=back, **kwargs
        )
    return _make
