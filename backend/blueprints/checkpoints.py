"""Checkpoints blueprint for Flask API."""
from flask import Blueprint, request, jsonify, current_app
from ..models import Checkpoint
from ..base.crud_base import CRUDBase
from ..services.patrol_service import get_patrol_service, NotFoundError
from ..utils import (api_error, handle_api_exception, validate_foreign_key,
                     get_request_coordinates, cascade_delete_checkpoint)
from shared.validation import Validator, ValidationError
bp = Blueprint('checkpoints', __name__, url_prefix='/api')


class CheckpointCRUD(CRUDBase):
    """CRUD operations for Checkpoint model."""

    def __init__(self):
        super().__init__(Checkpoint, logger_name='checkpoints')

    def base_query(self):
        """List query, optionally narrowed by ?location_id=."""
        query = super().base_query()
        location_id = request.args.get('location_id', type=int)
        if location_id is not None:
            query = query.filter(Checkpoint.location_id == location_id)
        return query

    def serialize(self, checkpoint):
        return {
            'id': checkpoint.id,
            'location_id': checkpoint.location_id,
            'name': checkpoint.name,
            'latitude': checkpoint.latitude,
            'longitude': checkpoint.longitude,
            'remote_id': checkpoint.remote_id or '',
            'created_at': checkpoint.created_at.isoformat(),
            'updated_at': checkpoint.updated_at.isoformat()
        }

    def validate_create_data(self, data):
        """Validate and prepare data for checkpoint creation."""
        validated_data = Validator.validate_checkpoint_data(data)

        location_id = validated_data['location_id']
        if not validate_foreign_key('patrol_locations', 'id', location_id):
            raise ValidationError(f'Patrol location with ID {location_id} does not exist')

        return validated_data

    def validate_update_data(self, data):
        validated_data = {}

        if 'name' in data:
            validated_data['name'] = Validator.sanitize_html(Validator.validate_required(
                Validator.validate_string_length(data['name'] or '', 'Checkpoint name', 1, 200),
                'Checkpoint name'
            ))

        if 'location_id' in data:
            location_id = Validator.validate_id(data['location_id'], 'Location ID')
            if not validate_foreign_key('patrol_locations', 'id', location_id):
                raise ValidationError(f'Patrol location with ID {location_id} does not exist')
            validated_data['location_id'] = location_id

        if 'latitude' in data or 'longitude' in data:
            if 'latitude' not in data or 'longitude' not in data:
                raise ValidationError('latitude and longitude must be updated together')
            validated_data['latitude'], validated_data['longitude'] = Validator.validate_coordinates(
                data['latitude'], data['longitude']
            )

        if 'remote_id' in data:
            validated_data['remote_id'] = Validator.validate_string_length(
                data['remote_id'] or '', 'Remote ID', 0, 100
            )

        return validated_data


checkpoint_crud = CheckpointCRUD()


@bp.route('/checkpoints', methods=['GET'])
def get_checkpoints():
    """Get paginated list of checkpoints, optionally for one ?location_id=."""
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 50, type=int)
    return checkpoint_crud.get_list(page=page, per_page=per_page)


@bp.route('/checkpoints/<int:checkpoint_id>', methods=['GET'])
def get_checkpoint(checkpoint_id):
    return checkpoint_crud.get_detail(checkpoint_id)


@bp.route('/checkpoints', methods=['POST'])
def create_checkpoint():
    return checkpoint_crud.create()


@bp.route('/checkpoints/<int:checkpoint_id>', methods=['PUT'])
def update_checkpoint(checkpoint_id):
    return checkpoint_crud.update(checkpoint_id)


@bp.route('/checkpoints/<int:checkpoint_id>', methods=['DELETE'])
def delete_checkpoint(checkpoint_id):
    return checkpoint_crud.delete(checkpoint_id, cascade_func=cascade_delete_checkpoint)


@bp.route('/checkpoints/nearby', methods=['GET'])
def get_nearby_checkpoints():
    """Checkpoints within ?radius= meters, nearest first.

    Passing ?officer_id= adds that officer's verification state to each item.
    """
    try:
        latitude, longitude = Validator.validate_coordinates(*get_request_coordinates(request.args))
        radius = Validator.validate_radius(
            request.args.get('radius', current_app.config.get('NEARBY_DEFAULT_RADIUS_METERS', 1000.0))
        )
        officer_id = request.args.get('officer_id')
        if officer_id is not None:
            officer_id = Validator.validate_officer_id(officer_id)
    except ValidationError as e:
        return api_error(str(e), 400)

    try:
        checkpoints = get_patrol_service().find_nearby_checkpoints(latitude, longitude, radius, officer_id)
        return jsonify({'checkpoints': checkpoints, 'radius_meters': radius})
    except Exception as e:
        return handle_api_exception(e, 'find nearby checkpoints')


@bp.route('/checkpoints/<int:checkpoint_id>/verified', methods=['GET'])
def is_checkpoint_verified(checkpoint_id):
    """Whether ?officer_id= has verified this checkpoint."""
    try:
        officer_id = Validator.validate_officer_id(request.args.get('officer_id'))
        verified = get_patrol_service().is_checkpoint_verified(checkpoint_id, officer_id)
        return jsonify({'checkpoint_id': checkpoint_id, 'officer_id': officer_id, 'is_verified': verified})
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404)
    except Exception as e:
        return handle_api_exception(e, 'check checkpoint verification')
