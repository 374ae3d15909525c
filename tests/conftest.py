"""Shared test fixtures for wolofdict."""

import pytest

from wolofdict import Actor, ModerationService


@pytest.fixture
def service():
    """Create an in-memory moderation service for testing."""
    with ModerationService(":memory:") as svc:
        yield svc


@pytest.fixture
def moderator():
    return Actor("mod-1", can_moderate=True)


@pytest.fixture
def contributor():
    return Actor("user-1")


@pytest.fixture
def service_with_words(service, contributor):
    """Service with three pending words: Ngor, Aada and Ñaan."""
    ngor = service.create_word("Ngor", contributor)
    aada = service.create_word("Aada", contributor)
    naan = service.create_word("Ñaan", contributor)
    return service, ngor, aada, naan


@pytest.fixture
def service_with_categories(service_with_words):
    """Service with words plus the Culture, Lieu and Religion categories."""
    svc, ngor, aada, naan = service_with_words
    culture = svc.create_category("Culture", name_wolof="Aada")
    lieu = svc.create_category("Lieu")
    religion = svc.create_category("Religion")
    return svc, ngor, culture, lieu, religion
