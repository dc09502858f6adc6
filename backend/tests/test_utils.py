"""Tests for the pure helpers: levels, slugs, YouTube ids and passwords."""

import re

import pytest

from learnity.core.security import check_password_strength
from learnity.services.certificate import generate_certificate_code
from learnity.utils.learning_path import percentage
from learnity.utils.text import extract_youtube_id, slugify
from learnity.utils.xp_calculator import calculate_level, level_progress, xp_for_level


@pytest.mark.parametrize("total_xp,level", [
    (0, 1),
    (99, 1),
    (100, 2),
    (249, 2),
    (250, 3),
    (14999, 10),
    (15000, 11),
    (19999, 11),
    (20000, 12),
])
def test_calculate_level(total_xp, level):
    assert calculate_level(total_xp) == level


def test_xp_for_level_past_last_threshold():
    assert xp_for_level(1) == 0
    assert xp_for_level(11) == 15000
    assert xp_for_level(13) == 25000


def test_level_progress():
    progress = level_progress(150)
    assert progress == {
        "current_level": 2,
        "current_level_xp": 100,
        "next_level_xp": 250,
        "xp_to_next_level": 100,
        "progress_percentage": 33,
    }


def test_percentage_rounds_half_up():
    assert percentage(0, 0) == 0
    assert percentage(1, 3) == 33
    assert percentage(2, 3) == 67
    assert percentage(1, 8) == 13
    assert percentage(3, 3) == 100


def test_slugify():
    assert slugify("  Intro to Python 3! ") == "intro-to-python-3"
    assert slugify("C++ & Rust: Systems") == "c-rust-systems"
    assert slugify("!!!") == "course"


@pytest.mark.parametrize("url", [
    "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
    "https://youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
    "https://youtu.be/dQw4w9WgXcQ",
    "https://www.youtube.com/embed/dQw4w9WgXcQ",
    "https://m.youtube.com/watch?v=dQw4w9WgXcQ",
    "  youtu.be/dQw4w9WgXcQ?t=42 ",
])
def test_extract_youtube_id(url):
    assert extract_youtube_id(url) == "dQw4w9WgXcQ"


@pytest.mark.parametrize("url", [
    None,
    "",
    "https://vimeo.com/123456",
    "https://www.youtube.com/watch?v=short",
])
def test_extract_youtube_id_rejects_other_urls(url):
    assert extract_youtube_id(url) is None


def test_password_strength():
    assert check_password_strength("Passw0rd!")["valid"] is True

    weak = check_password_strength("password")
    assert weak["valid"] is False
    assert len(weak["issues"]) == 3


def test_certificate_code_format():
    code = generate_certificate_code()
    assert re.fullmatch(r"[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}", code)


def test_timestamps_are_stored_naive():
    from sqlalchemy import DateTime

    from learnity.core.database import Base
    import learnity.models  # noqa: F401

    aware = [
        f"{table.name}.{column.name}"
        for table in Base.metadata.sorted_tables
        for column in table.columns
        if isinstance(column.type, DateTime) and column.type.timezone
    ]
    assert aware == []
