import random

import pytest

from smartlearn.application.learn.engine import LearnEngine
from smartlearn.domain.learn.models import Card, CardDifficulty


@pytest.fixture
def animal_cards():
    """A small deck with two domains, so distractor selection has choices."""
    return [
        Card(id="1", front="cat", back="con mèo", domain="animals"),
        Card(id="2", front="dog", back="con chó", domain="animals"),
        Card(id="3", front="bird", back="con chim", domain="animals"),
        Card(id="4", front="fish", back="con cá", domain="animals"),
        Card(id="5", front="apple", back="quả táo", domain="fruit", difficulty=CardDifficulty.EASY),
        Card(id="6", front="banana", back="quả chuối", domain="fruit"),
    ]


@pytest.fixture
def engine(animal_cards):
    return LearnEngine(animal_cards, rng=random.Random(42))


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config files
    monkeypatch.setenv("HOME", str(home))
    return home
