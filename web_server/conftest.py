"""Shared pytest fixtures: user factories and an API client over an in-memory directory."""
from itertools import count

import pytest
from fastapi.testclient import TestClient

from models.user import Badge, Skill, User
from services.directory import InMemoryUserDirectory


def _skills(entries) -> list[Skill]:
    """Accept Skill objects or (name, level[, category]) tuples."""
    skills = []
    for entry in entries:
        if isinstance(entry, Skill):
            skills.append(entry)
        else:
            name, level, *rest = entry
            skills.append(Skill(name=name, level=level, category=rest[0] if rest else ""))
    return skills


@pytest.fixture
def make_user():
    ids = count(1)

    def _make(
        name: str,
        teach=(),
        learn=(),
        credits: int = 0,
        badges: int = 0,
        uid: str | None = None,
        email: str | None = None,
    ) -> User:
        uid = uid or f"u{next(ids)}"
        return User(
            id=uid,
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}@university.edu",
            credits=credits,
            badges=[Badge(id=f"b{i}", name=f"Badge {i}") for i in range(badges)],
            skills_teach=_skills(teach),
            skills_learn=_skills(learn),
        )

    return _make


@pytest.fixture
def directory() -> InMemoryUserDirectory:
    return InMemoryUserDirectory()


@pytest.fixture
def client(directory):
    from app import app, get_directory

    app.dependency_overrides[get_directory] = lambda: directory
    # Not used as a context manager, so the MongoDB lifespan never runs.
    yield TestClient(app)
    app.dependency_overrides.clear()
