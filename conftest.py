# conftest.py

import os
from datetime import datetime, timedelta, timezone

import pytest

# Set testing environment BEFORE importing app so app.py picks TestingConfig
os.environ["FLASK_ENV"] = "testing"

# Now import app and other modules after environment is set
from app import app as flask_app
from flask_app.models import Contact, LinkPrecedence, db

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def app():
    """Create and configure a test Flask application with a clean schema"""
    flask_app.config.update(
        {
            "TESTING": True,
            "MONITORING_ENABLED": False,
            "ENABLE_FILE_LOGGING": False,
            "ENABLE_CONSOLE_LOGGING": False,
            "LOG_LEVEL": "DEBUG",
            "IDENTITY_MAX_ATTEMPTS": 3,
            "IDENTITY_RETRY_BACKOFF_SECONDS": 0.0,
        }
    )

    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    """Create a test client for the Flask application"""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


@pytest.fixture
def contact_factory(app):
    """
    Insert contacts with controlled creation times.

    ``minutes`` offsets created_at from a fixed base time so tests can
    decide which primary is older.
    """

    def _factory(
        *,
        email=None,
        phone_number=None,
        linked_to=None,
        minutes=0,
        deleted=False,
    ):
        created_at = BASE_TIME + timedelta(minutes=minutes)
        contact = Contact(
            email=email,
            phone_number=phone_number,
            link_precedence=LinkPrecedence.SECONDARY if linked_to else LinkPrecedence.PRIMARY,
            linked_id=linked_to.id if linked_to else None,
            created_at=created_at,
            updated_at=created_at,
            deleted_at=created_at + timedelta(minutes=1) if deleted else None,
        )
        db.session.add(contact)
        db.session.commit()
        return contact

    return _factory


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers and ensure testing environment"""
    os.environ["FLASK_ENV"] = "testing"

    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers"""
    for item in items:
        if "integration" in item.nodeid:
            item.add_marker(pytest.mark.slow)
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
