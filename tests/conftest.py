"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- A fresh in-memory database per test
- Repositories bound to the sample models
"""

import os

# Set test environment variables BEFORE any baserepo imports
# so the settings singleton and global engine load with test values
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["REPOSITORY_AUTOCOMMIT"] = "true"
os.environ["DEFAULT_LIMIT"] = "10000"
os.environ["LOG_LEVEL"] = "INFO"

import pytest
from sqlalchemy.orm import sessionmaker

from baserepo.database import create_db_engine
from baserepo.models import Base
from tests.models import AuthorRepository, PostRepository, TagRepository


@pytest.fixture
def engine():
    """In-memory SQLite engine with all sample tables created."""
    engine = create_db_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Session bound to the test engine."""
    session_factory = sessionmaker(bind=engine)
    with session_factory() as session:
        yield session


@pytest.fixture
def authors(session):
    return AuthorRepository(session)


@pytest.fixture
def tags(session):
    return TagRepository(session)


@pytest.fixture
def posts(session):
    return PostRepository(session)


@pytest.fixture
def ranked_posts(posts):
    """Ten posts with rank 1..10, created in rank order."""
    return [posts.create({"title": f"post-{i}", "rank": i}) for i in range(1, 11)]
