"""Pytest configuration and fixtures."""

import os
from typing import Any

import pytest

from memsearch.search import SearchAnalytics, SearchEngine
from memsearch.storage import MemoryStore


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Isolate environment variables and XDG directories for each test."""
    original_env = os.environ.copy()

    for key in list(os.environ):
        if key.startswith("MEMSEARCH_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    yield

    os.environ.clear()
    os.environ.update(original_env)


def memorial(id: str, full_name: str, **fields: Any) -> dict[str, Any]:
    """Raw memorial record, public unless stated otherwise."""
    return {"id": id, "full_name": full_name, "privacy": "public", **fields}


@pytest.fixture
def sample_records() -> list[dict[str, Any]]:
    """Memorials with diverse content and visibility."""
    return [
        memorial(
            "anna",
            "Anna Lindström",
            biography="Anna taught mathematics in Göteborg for forty years.",
            tags=["lärare"],
            date_of_death="2023-11-08",
            location={"city": "Göteborg", "state": "Västra Götaland", "country": "Sweden"},
            organization="org-1",
            gallery=[{"kind": "image", "url": "https://example.org/anna.jpg"}],
        ),
        memorial(
            "erik",
            "Erik Johansson",
            biography="Erik played the violin in the city orchestra.",
            tags=["musiker"],
            date_of_death="2024-01-12",
            location={"city": "Stockholm", "state": "Stockholm", "country": "Sweden"},
            organization="org-2",
            gallery=[{"kind": "video", "url": "https://example.org/erik.mp4"}],
            guestbook=[{"message": "Thank you for the music", "author": "Sven"}],
        ),
        memorial(
            "karin",
            "Karin Berg",
            privacy="private",
            created_by="user-9",
            organization="org-3",
            tags=["lärare"],
            date_of_death="2022-05-01",
            location={"city": "Uppsala", "state": "Uppsala", "country": "Sweden"},
        ),
        memorial(
            "olof",
            "Olof Svensson",
            privacy="link-only",
            organization="org-2",
            tags=["fiskare"],
            date_of_death="2021-03-03",
        ),
        memorial(
            "maria",
            "Maria Lind",
            life_story="Maria raised her family in Austin and volunteered at the library.",
            tags=["teacher", "family"],
            date_of_death="2020-06-15",
            location={"city": "Austin", "state": "Texas", "country": "USA"},
            organization="org-1",
            timeline=[
                {"title": "Born in Austin", "description": "First of four children", "date": "1950-02-01"},
                {"title": "Library volunteer", "description": "Read to children every Saturday"},
            ],
        ),
    ]


@pytest.fixture
def memory_store(sample_records) -> MemoryStore:
    return MemoryStore(sample_records)


@pytest.fixture
def engine(memory_store) -> SearchEngine:
    """Engine over the sample memorials with analytics enabled."""
    return SearchEngine(memory_store, analytics=SearchAnalytics(memory_store))


@pytest.fixture
def make_memorial():
    """Factory for raw memorial records."""
    return memorial
