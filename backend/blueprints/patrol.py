"""Patrol verification blueprint for Flask API."""
from flask import Blueprint, request, jsonify
from pydantic import ValidationError as PydanticValidationError
from ..services.patrol_service import get_patrol_service, parse_timestamp, NotFoundError, OutOfRangeError
from ..utils import api_error, handle_api_exception
from shared.schemas import VerificationRequest, format_pydantic_errors
from shared.validation import Validator, ValidationError
bp = Blueprint('patrol', __name__, url_prefix='/api/patrol')


@bp.route('/verify', methods=['POST'])
def verify_checkpoint():
    """Verify a checkpoint if the officer is within the proximity threshold.

    Returns 201 for a new verification and 200 with status already_verified
    when the officer had verified the checkpoint before.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error('Request body must be a JSON object', 400)

    try:
        verification_request = VerificationRequest(**data)
    except PydanticValidationError as e:
        return api_error(f'Invalid verification request: {format_pydantic_errors(e)}', 400)
    except ValidationError as e:
        return api_error(str(e), 400)

    try:
        response = get_patrol_service().verify_checkpoint(verification_request)
    except NotFoundError as e:
        return api_error(str(e), 404)
    except OutOfRangeError as e:
        return api_error(
            'Officer is not within range of the checkpoint',
            422,
            details={
                'checkpoint_id': e.checkpoint_id,
                'distance_meters': e.distance_meters,
                'threshold_meters': e.threshold_meters,
            }
        )
    except Exception as e:
        return handle_api_exception(e, 'verify checkpoint')

    status_code = 201 if response.status == 'verified' else 200
    return jsonify(response.model_dump(mode='json')), status_code


@bp.route('/verifications', methods=['GET'])
def get_verifications():
    """Verifications of ?officer_id=, newest first, within optional ?start=&end=."""
    try:
        officer_id = Validator.validate_officer_id(request.args.get('officer_id'))
        start = parse_timestamp(request.args.get('start'), 'start')
        end = parse_timestamp(request.args.get('end'), 'end')
        verifications = get_patrol_service().get_verifications(officer_id, start, end)
    except ValidationError as e:
        return api_error(str(e), 400)
    except Exception as e:
        return handle_api_exception(e, 'get verifications')

    return jsonify({'officer_id': officer_id, 'verifications': verifications})
