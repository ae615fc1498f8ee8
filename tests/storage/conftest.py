"""Shared fixtures for storage tests."""

import json

import pytest


@pytest.fixture
def store_records():
    """Small records exercising nested, list and missing fields."""
    return [
        {
            "id": "a",
            "name": "Åsa",
            "n": 1,
            "tags": ["x", "y", "x"],
            "date": "2020-05-01",
            "place": {"city": "Lund", "state": "Skåne"},
            "events": [{"title": "Born in Lund"}],
        },
        {
            "id": "b",
            "name": "bo",
            "n": 2,
            "tags": ["y"],
            "date": "2021-01-01",
            "place": {"city": "Lund"},
        },
        {"id": "c", "name": "Cia", "n": 3, "date": "unknown"},
    ]


@pytest.fixture
def write_json(tmp_path):
    """Write data to a JSON file and return its path."""

    def write(data, name="memorials.json"):
        path = tmp_path / name
        path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        return path

    return write
