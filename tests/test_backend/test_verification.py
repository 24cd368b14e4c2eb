"""Tests for proximity-gated checkpoint verification and patrol status."""
import json
import pytest
from datetime import datetime, timedelta
from backend.models import db, CheckpointVerification
from backend.services.patrol_service import PatrolService, OutOfRangeError, NotFoundError, parse_timestamp
from shared.geo import compute_distance
from shared.schemas import VerificationRequest
from shared.validation import ValidationError

NEAR_NORTH = {'latitude': 34.0523, 'longitude': -118.2438}
FAR_FROM_NORTH = {'latitude': 34.0540, 'longitude': -118.2437}


def verify(client, checkpoint_id, officer_id='officer-1', position=NEAR_NORTH):
    return client.post('/api/patrol/verify', json={
        'checkpoint_id': checkpoint_id,
        'officer_id': officer_id,
        **position,
    })


def test_verify_within_range(client, patrol_site):
    response = verify(client, patrol_site['north_id'])
    assert response.status_code == 201
    data = json.loads(response.data)
    assert data['status'] == 'verified'
    assert data['checkpoint_id'] == patrol_site['north_id']
    assert data['officer_id'] == 'officer-1'
    assert data['distance_meters'] < 15.24


def test_verify_out_of_range(client, app, patrol_site):
    response = verify(client, patrol_site['north_id'], position=FAR_FROM_NORTH)
    assert response.status_code == 422
    data = json.loads(response.data)
    assert 'error' in data
    assert data['distance_meters'] == pytest.approx(200, rel=0.05)
    assert data['threshold_meters'] == 15.24

    with app.app_context():
        assert CheckpointVerification.query.count() == 0


def test_repeat_verification_keeps_original_time(client, app, patrol_site):
    first = json.loads(verify(client, patrol_site['north_id']).data)

    response = verify(client, patrol_site['north_id'], position={'latitude': 34.0522, 'longitude': -118.2437})
    assert response.status_code == 200
    second = json.loads(response.data)
    assert second['status'] == 'already_verified'
    assert second['timestamp'] == first['timestamp']
    assert second['distance_meters'] == first['distance_meters']

    with app.app_context():
        assert CheckpointVerification.query.count() == 1


def test_repeat_verification_from_far_away_is_still_already_verified(client, patrol_site):
    verify(client, patrol_site['north_id'])
    response = verify(client, patrol_site['north_id'], position=FAR_FROM_NORTH)
    assert response.status_code == 200
    assert json.loads(response.data)['status'] == 'already_verified'


def test_verification_is_per_officer(client, patrol_site):
    verify(client, patrol_site['north_id'], officer_id='officer-1')
    response = verify(client, patrol_site['north_id'], officer_id='officer-2')
    assert response.status_code == 201
    assert json.loads(response.data)['status'] == 'verified'


def test_verify_unknown_checkpoint(client, patrol_site):
    response = verify(client, 9999)
    assert response.status_code == 404


@pytest.mark.parametrize('payload', [
    {'officer_id': 'officer-1', 'latitude': 0, 'longitude': 0},
    {'checkpoint_id': 1, 'officer_id': 'officer-1', 'latitude': 91, 'longitude': 0},
    {'checkpoint_id': 1, 'officer_id': 'officer 1', 'latitude': 0, 'longitude': 0},
    {'checkpoint_id': 1, 'officer_id': 'officer-1', 'latitude': 'north', 'longitude': 0},
])
def test_verify_rejects_invalid_requests(client, patrol_site, payload):
    response = client.post('/api/patrol/verify', json=payload)
    assert response.status_code == 400
    assert 'error' in json.loads(response.data)


def test_verify_requires_json_object(client):
    response = client.post('/api/patrol/verify', json=[1, 2, 3])
    assert response.status_code == 400


def test_threshold_comes_from_app_config(client, app, patrol_site):
    app.config['CHECKPOINT_PROXIMITY_THRESHOLD_METERS'] = 300.0
    response = verify(client, patrol_site['north_id'], position=FAR_FROM_NORTH)
    assert response.status_code == 201


def test_patrol_status_counts_per_officer(client, patrol_site):
    location_id = patrol_site['location_id']
    verify(client, patrol_site['north_id'])

    response = client.get(f'/api/locations/{location_id}/status?officer_id=officer-1')
    assert response.status_code == 200
    status = json.loads(response.data)
    assert status['total_checkpoints'] == 2
    assert status['verified_checkpoints'] == 1
    assert status['is_complete'] is False
    assert status['last_verification_time'] is not None

    verify(client, patrol_site['south_id'], position={'latitude': 34.0500, 'longitude': -118.2437})
    status = json.loads(client.get(f'/api/locations/{location_id}/status?officer_id=officer-1').data)
    assert status['verified_checkpoints'] == 2
    assert status['is_complete'] is True

    status = json.loads(client.get(f'/api/locations/{location_id}/status?officer_id=officer-2').data)
    assert status['verified_checkpoints'] == 0
    assert status['last_verification_time'] is None


def test_patrol_status_requires_officer(client, patrol_site):
    response = client.get(f"/api/locations/{patrol_site['location_id']}/status")
    assert response.status_code == 400


def test_location_checkpoints_show_officer_state(client, patrol_site):
    verify(client, patrol_site['north_id'])
    response = client.get(f"/api/locations/{patrol_site['location_id']}/checkpoints?officer_id=officer-1")
    checkpoints = {c['id']: c for c in json.loads(response.data)['checkpoints']}
    assert checkpoints[patrol_site['north_id']]['is_verified'] is True
    assert checkpoints[patrol_site['north_id']]['verification_time'] is not None
    assert checkpoints[patrol_site['south_id']]['is_verified'] is False


def test_checkpoint_verified_endpoint(client, patrol_site):
    url = f"/api/checkpoints/{patrol_site['north_id']}/verified?officer_id=officer-1"
    assert json.loads(client.get(url).data)['is_verified'] is False

    verify(client, patrol_site['north_id'])
    assert json.loads(client.get(url).data)['is_verified'] is True

    assert client.get('/api/checkpoints/9999/verified?officer_id=officer-1').status_code == 404


def test_verification_history(client, patrol_site):
    verify(client, patrol_site['north_id'])
    verify(client, patrol_site['south_id'], position={'latitude': 34.0500, 'longitude': -118.2437})

    response = client.get('/api/patrol/verifications?officer_id=officer-1')
    assert response.status_code == 200
    verifications = json.loads(response.data)['verifications']
    assert len(verifications) == 2
    # Newest first
    assert verifications[0]['timestamp'] >= verifications[1]['timestamp']

    response = client.get('/api/patrol/verifications?officer_id=officer-1&start=2999-01-01T00:00:00Z')
    assert json.loads(response.data)['verifications'] == []

    response = client.get('/api/patrol/verifications?officer_id=officer-1&start=2000-01-01T00:00:00Z')
    assert len(json.loads(response.data)['verifications']) == 2


def test_verification_history_rejects_bad_ranges(client):
    response = client.get('/api/patrol/verifications?officer_id=officer-1'
                          '&start=2024-02-01T00:00:00&end=2024-01-01T00:00:00')
    assert response.status_code == 400

    response = client.get('/api/patrol/verifications?officer_id=officer-1&start=yesterday')
    assert response.status_code == 400


class TestPatrolServiceDirect:
    """Service-level behavior without the HTTP layer."""

    def test_out_of_range_error_details(self, app, patrol_site):
        with app.app_context():
            service = PatrolService(threshold_meters=15.24)
            request = VerificationRequest(checkpoint_id=patrol_site['north_id'],
                                          officer_id='officer-1', **FAR_FROM_NORTH)
            with pytest.raises(OutOfRangeError) as exc_info:
                service.verify_checkpoint(request)
            assert exc_info.value.threshold_meters == 15.24
            assert exc_info.value.distance_meters > 15.24

    def test_boundary_distance_is_accepted(self, app, patrol_site):
        distance = compute_distance(34.0522, -118.2437, NEAR_NORTH['latitude'], NEAR_NORTH['longitude'])
        with app.app_context():
            request = VerificationRequest(checkpoint_id=patrol_site['north_id'],
                                          officer_id='officer-1', **NEAR_NORTH)
            response = PatrolService(threshold_meters=distance).verify_checkpoint(request)
            assert response.status == 'verified'

    def test_unknown_location(self, app):
        with app.app_context():
            with pytest.raises(NotFoundError):
                PatrolService().get_patrol_status(123, 'officer-1')

    def test_parse_timestamp_converts_to_naive_utc(self):
        parsed = parse_timestamp('2024-03-01T10:00:00+02:00', 'start')
        assert parsed.tzinfo is None
        assert parsed.hour == 8
        assert parse_timestamp('', 'start') is None

        with pytest.raises(ValidationError):
            parse_timestamp('03/01/2024', 'start')

    def test_verification_row_is_stored(self, app, patrol_site):
        with app.app_context():
            request = VerificationRequest(checkpoint_id=patrol_site['south_id'], officer_id='officer-3',
                                          latitude=34.0500, longitude=-118.2437)
            PatrolService().verify_checkpoint(request)
            stored = CheckpointVerification.query.filter_by(officer_id='officer-3').one()
            assert stored.checkpoint_id == patrol_site['south_id']
            assert stored.distance_meters == pytest.approx(0.0, abs=1e-6)
            assert db.session.get(CheckpointVerification, stored.id) is not None


def test_timestamps_carry_utc_offset(client, patrol_site):
    data = json.loads(verify(client, patrol_site['north_id']).data)
    assert datetime.fromisoformat(data['timestamp'].replace('Z', '+00:00')).utcoffset() == timedelta(0)

    verifications = json.loads(client.get('/api/patrol/verifications?officer_id=officer-1').data)['verifications']
    assert verifications[0]['timestamp'].endswith('+00:00')

    location_id = patrol_site['location_id']
    status = json.loads(client.get(f'/api/locations/{location_id}/status?officer_id=officer-1').data)
    assert status['last_verification_time'].endswith('+00:00')

    response = client.get(f'/api/locations/{location_id}/checkpoints?officer_id=officer-1')
    checkpoints = {c['id']: c for c in json.loads(response.data)['checkpoints']}
    assert checkpoints[patrol_site['north_id']]['verification_time'].endswith('+00:00')
