"""Patrol locations blueprint for Flask API."""
from flask import Blueprint, request, jsonify, current_app
from ..models import PatrolLocation
from ..base.crud_base import CRUDBase
from ..services.patrol_service import get_patrol_service, NotFoundError
from ..utils import api_error, handle_api_exception, get_request_coordinates, cascade_delete_location
from shared.validation import Validator, ValidationError
bp = Blueprint('locations', __name__, url_prefix='/api')


class LocationCRUD(CRUDBase):
    """CRUD operations for PatrolLocation model."""

    def __init__(self):
        super().__init__(PatrolLocation, logger_name='locations')

    def serialize(self, location):
        return {
            'id': location.id,
            'name': location.name,
            'address': location.address,
            'latitude': location.latitude,
            'longitude': location.longitude,
            'checkpoint_count': len(location.checkpoints),
            'created_at': location.created_at.isoformat(),
            'updated_at': location.updated_at.isoformat()
        }

    def validate_create_data(self, data):
        validated_data = Validator.validate_location_data(data)
        validated_data.setdefault('latitude', 0.0)
        validated_data.setdefault('longitude', 0.0)
        return validated_data

    def validate_update_data(self, data):
        """Validate a partial update; name stays required when present."""
        validated_data = {}

        if 'name' in data:
            validated_data['name'] = Validator.sanitize_html(Validator.validate_required(
                Validator.validate_string_length(data['name'] or '', 'Location name', 1, 200),
                'Location name'
            ))

        if 'address' in data:
            validated_data['address'] = Validator.sanitize_html(
                Validator.validate_string_length(data['address'] or '', 'Location address', 0, 500)
            )

        if 'latitude' in data or 'longitude' in data:
            if 'latitude' not in data or 'longitude' not in data:
                raise ValidationError('latitude and longitude must be updated together')
            validated_data['latitude'], validated_data['longitude'] = Validator.validate_coordinates(
                data['latitude'], data['longitude']
            )

        return validated_data

    def get_singular_name(self):
        return 'location'

    def get_plural_name(self):
        return 'locations'


location_crud = LocationCRUD()


@bp.route('/locations', methods=['GET'])
def get_locations():
    """Get paginated list of patrol locations."""
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 50, type=int)
    return location_crud.get_list(page=page, per_page=per_page)


@bp.route('/locations/<int:location_id>', methods=['GET'])
def get_location(location_id):
    return location_crud.get_detail(location_id)


@bp.route('/locations', methods=['POST'])
def create_location():
    return location_crud.create()


@bp.route('/locations/<int:location_id>', methods=['PUT'])
def update_location(location_id):
    return location_crud.update(location_id)


@bp.route('/locations/<int:location_id>', methods=['DELETE'])
def delete_location(location_id):
    """Delete a location together with its checkpoints and verifications."""
    return location_crud.delete(location_id, cascade_func=cascade_delete_location)


@bp.route('/locations/nearby', methods=['GET'])
def get_nearby_locations():
    """Locations within ?radius= meters of ?latitude=&longitude=, nearest first."""
    try:
        latitude, longitude = Validator.validate_coordinates(*get_request_coordinates(request.args))
        radius = Validator.validate_radius(
            request.args.get('radius', current_app.config.get('NEARBY_DEFAULT_RADIUS_METERS', 1000.0))
        )
    except ValidationError as e:
        return api_error(str(e), 400)

    try:
        locations = get_patrol_service().find_nearby_locations(latitude, longitude, radius)
        return jsonify({'locations': locations, 'radius_meters': radius})
    except Exception as e:
        return handle_api_exception(e, 'find nearby locations')


@bp.route('/locations/<int:location_id>/checkpoints', methods=['GET'])
def get_location_checkpoints(location_id):
    """Checkpoints of a location; ?officer_id= adds that officer's verification state."""
    officer_id = request.args.get('officer_id')
    try:
        if officer_id is not None:
            officer_id = Validator.validate_officer_id(officer_id)
        checkpoints = get_patrol_service().get_checkpoints(location_id, officer_id)
        return jsonify({'location_id': location_id, 'checkpoints': checkpoints})
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404)
    except Exception as e:
        return handle_api_exception(e, 'get location checkpoints')


@bp.route('/locations/<int:location_id>/status', methods=['GET'])
def get_patrol_status(location_id):
    """Patrol progress of ?officer_id= at this location."""
    try:
        officer_id = Validator.validate_officer_id(request.args.get('officer_id'))
        return jsonify(get_patrol_service().get_patrol_status(location_id, officer_id))
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404)
    except Exception as e:
        return handle_api_exception(e, 'get patrol status')
