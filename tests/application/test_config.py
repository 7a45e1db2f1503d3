from pathlib import Path

import pytest
from pydantic import ValidationError

from smartlearn.application.config import AppConfig, LearnSettings, resolve_config
from smartlearn.domain.learn.models import LearnParams, ReviewDifficultyChoice


def test_defaults(mock_home):
    config = resolve_config()
    assert config.default_user == "local"
    assert config.library_dir == mock_home / ".local/share/smartlearn/libraries"
    assert config.learn.mc_options == 4
    params = config.learn.to_params()
    assert isinstance(params, LearnParams)
    assert params.mode_threshold == 2
    assert params.max_mastery == 5
    assert params.choice_offsets[ReviewDifficultyChoice.AGAIN] == 3


def test_toml_file_is_loaded(mock_home):
    config_dir = mock_home / ".config/smartlearn"
    config_dir.mkdir(parents=True)
    (config_dir / "config.toml").write_text(
        'default_user = "alice"\nlibrary_dir = "~/decks"\n\n[learn]\nmc_options = 3\n'
    )

    config = resolve_config()
    assert config.default_user == "alice"
    assert config.library_dir == (mock_home / "decks").resolve()
    assert config.learn.mc_options == 3


def test_env_overrides_file(mock_home, monkeypatch):
    (mock_home / ".smartlearn.toml").write_text('default_user = "alice"\n')
    monkeypatch.setenv("SMARTLEARN_DEFAULT_USER", "bob")
    monkeypatch.setenv("SMARTLEARN_LEARN__PROMPT_WRONG_STREAK", "5")

    config = resolve_config()
    assert config.default_user == "bob"
    assert config.learn.prompt_wrong_streak == 5


def test_cli_overrides_win_and_none_is_ignored(mock_home, monkeypatch):
    monkeypatch.setenv("SMARTLEARN_DEFAULT_USER", "bob")
    config = resolve_config({"default_user": "carol", "library_dir": None})
    assert config.default_user == "carol"
    assert config.library_dir == mock_home / ".local/share/smartlearn/libraries"


def test_override_path_is_resolved(mock_home, tmp_path):
    config = resolve_config({"library_dir": tmp_path / "a" / ".." / "b"})
    assert config.library_dir == (tmp_path / "b").resolve()


def test_choice_offsets_are_merged_with_defaults():
    settings = LearnSettings(choice_offsets={"hard": 2})
    assert settings.choice_offsets[ReviewDifficultyChoice.HARD] == 2
    assert settings.choice_offsets[ReviewDifficultyChoice.VERY_HARD] == 0
    assert settings.choice_offsets[ReviewDifficultyChoice.NORMAL] is None

    params = settings.to_params()
    assert params.choice_offsets[ReviewDifficultyChoice.HARD] == 2


@pytest.mark.parametrize(
    "kwargs",
    [
        {"choice_offsets": {"hard": -1}},
        {"choice_offsets": {"impossible": 1}},
        {"mc_options": 0},
        {"prompt_wrong_count": 0},
    ],
)
def test_invalid_learn_settings(kwargs):
    with pytest.raises(ValidationError):
        LearnSettings(**kwargs)


def test_config_is_isolated_from_real_home(mock_home):
    assert isinstance(AppConfig().progress_dir, Path)
    assert str(AppConfig().progress_dir).startswith(str(mock_home))
