"""Tests for guessit utilities."""

from unittest.mock import Mock, patch

import pytest

from bangumi_meta.guessit_utils import parse_guessit_safe
from bangumi_meta.models import GuessitData


class Language:
    """Stand-in for babelfish's Language."""

    def __init__(self, code: str):
        self.code = code

    def __str__(self):
        return self.code


def test_parse_guessit_safe_anime_release():
    """Test an absolute episode number after a dash."""
    result = parse_guessit_safe("[Group] Show Name - 03 [1080p].mkv")

    assert isinstance(result, GuessitData)
    assert result.title == "Show Name"
    assert result.episode == 3
    assert result.release_group == "Group"


def test_parse_guessit_safe_season_episode():
    result = parse_guessit_safe("[Group] Show Name S02E05 [1080p].mkv")

    assert result.season == 2
    assert result.episode == 5


@pytest.mark.parametrize("filename", ["", None])
def test_parse_guessit_safe_no_filename(filename):
    result = parse_guessit_safe(filename)
    assert result == GuessitData()


def test_parse_guessit_safe_forces_episode_type():
    with patch("bangumi_meta.guessit_utils.guessit.guessit") as mock_guessit:
        mock_guessit.return_value = {"title": "Show"}

        parse_guessit_safe("Show 01.mkv")

        mock_guessit.assert_called_once_with("Show 01.mkv", {"type": "episode"})


def test_parse_guessit_safe_converts_objects():
    """Language and Path values become strings."""
    path = Mock()
    path.__fspath__ = Mock(return_value="/anime/Show 01.mkv")

    with patch("bangumi_meta.guessit_utils.guessit.guessit") as mock_guessit:
        mock_guessit.return_value = {
            "title": "Show",
            "language": Language("ja"),
            "subtitle_language": [Language("zh"), Language("en")],
            "container": path,
        }

        result = parse_guessit_safe("Show 01.mkv")

    assert result.language == "ja"
    assert result.subtitle_language == ["zh", "en"]
    assert result.container == "/anime/Show 01.mkv"


def test_parse_guessit_safe_episode_range():
    """Batches with several episodes have no single episode number."""
    with patch("bangumi_meta.guessit_utils.guessit.guessit") as mock_guessit:
        mock_guessit.return_value = {"title": "Show", "episode": [1, 12], "season": [1]}

        result = parse_guessit_safe("[Group] Show 01-12 [BATCH]")

    assert result.title == "Show"
    assert result.episode is None
    assert result.season == 1


def test_parse_guessit_safe_guessit_error(caplog):
    with patch("bangumi_meta.guessit_utils.guessit.guessit") as mock_guessit:
        mock_guessit.side_effect = Exception("Guessit error")

        result = parse_guessit_safe("Show 01.mkv")

    assert result == GuessitData()
    assert "Guessit failed" in caplog.text


def test_parse_guessit_safe_validation_error():
    with patch("bangumi_meta.guessit_utils.guessit.guessit") as mock_guessit:
        mock_guessit.return_value = {"title": "Show", "episode": "not a number"}

        result = parse_guessit_safe("Show 01.mkv")

    assert result.title is None
