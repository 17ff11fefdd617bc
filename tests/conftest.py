import json

import pytest


@pytest.fixture
def export_document():
    """Contest export with two categories. Ballots in category "cat-1" elect Cee in two rounds."""
    return {
        "contest": {
            "id": "contest-1",
            "slug": "best-pie",
            "title": "Best Pie",
            "votingMethod": "IRV",
            "exportedAt": "2024-05-01T12:00:00.000Z",
        },
        "options": [
            {"id": "a", "name": "Ay", "categoryId": "cat-1"},
            {"id": "b", "name": "Bee", "categoryId": "cat-1"},
            {"id": "c", "name": "Cee", "categoryId": "cat-1"},
            {"id": "x", "name": "Ex", "categoryId": "cat-2"},
        ],
        "categories": [{"id": "cat-1", "name": "Pies"}, {"id": "cat-2", "name": "Cakes"}],
        "ballotCount": 6,
        "ballots": [
            {
                "id": "b1",
                "categoryId": "cat-1",
                "ranking": [{"optionId": "a", "optionName": "Ay"}, {"optionId": "b", "optionName": "Bee"}],
                "status": "VALID",
                "createdAt": "2024-05-01T10:00:00.000Z",
            },
            {"id": "b2", "categoryId": "cat-1", "ranking": ["a", "b"], "status": "VALID"},
            {"id": "b3", "categoryId": "cat-1", "ranking": ["b", "c"], "status": "VALID"},
            {"id": "b4", "categoryId": "cat-1", "ranking": ["c", "a"], "status": "VALID"},
            {"id": "b5", "categoryId": "cat-1", "ranking": ["c", "a"], "status": "VALID"},
            {"id": "b6", "categoryId": "cat-2", "ranking": ["x"], "status": "VALID"},
        ],
    }


@pytest.fixture
def export_path(tmp_path, export_document):
    path = tmp_path / "contest-1.json"
    with open(path, "w") as export_file:
        json.dump(export_document, export_file)
    return path
