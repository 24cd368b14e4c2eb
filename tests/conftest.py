"""Pytest configuration and fixtures for Security Patrol tests."""
import pytest
import tempfile
import os
from unittest.mock import Mock
from backend.app import create_app
from backend.models import db, PatrolLocation, Checkpoint


@pytest.fixture
def app(tmp_path):
    """Create and configure a test app instance."""
    # Create temporary database for testing
    db_fd, db_path = tempfile.mkstemp()

    test_config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_DIR': str(tmp_path / 'logs'),
    }

    app = create_app(test_config)

    with app.app_context():
        db.create_all()

    yield app

    # Cleanup
    with app.app_context():
        db.session.remove()
        db.engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def patrol_site(app):
    """A location in downtown Los Angeles with two checkpoints.

    Returns plain ids so tests never hold detached instances.
    """
    with app.app_context():
        location = PatrolLocation(name='City Hall', address='200 N Spring St',
                                  latitude=34.0537, longitude=-118.2428)
        db.session.add(location)
        db.session.flush()
        north = Checkpoint(location_id=location.id, name='North Gate',
                           latitude=34.0522, longitude=-118.2437)
        south = Checkpoint(location_id=location.id, name='South Gate',
                           latitude=34.0500, longitude=-118.2437, remote_id='SG-1')
        db.session.add_all([north, south])
        db.session.commit()
        return {'location_id': location.id, 'north_id': north.id, 'south_id': south.id}


@pytest.fixture
def api_service():
    """Mock APIService serving location 1 and its two checkpoints."""
    service = Mock()
    service.get_locations.return_value = [
        {'id': 1, 'name': 'City Hall', 'address': '200 N Spring St',
         'latitude': 34.0537, 'longitude': -118.2428}
    ]
    service.get_checkpoints.return_value = [
        {'id': 10, 'location_id': 1, 'name': 'North Gate',
         'latitude': 34.0522, 'longitude': -118.2437},
        {'id': 11, 'location_id': 1, 'name': 'South Gate',
         'latitude': 34.0500, 'longitude': -118.2437},
    ]
    service.verify_checkpoint.return_value = {'status': 'verified'}
    return service
