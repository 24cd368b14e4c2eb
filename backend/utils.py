"""Backend utility functions for the patrol API."""
from flask import jsonify
from .models import db, PatrolLocation, Checkpoint, CheckpointVerification
import logging


logger = logging.getLogger(__name__)


def api_error(message, status_code=400, log_level='warning', details=None):
    """
    Standardized API error response with consistent logging.

    Args:
        message (str): Error message for the client
        status_code (int): HTTP status code
        log_level (str): Logging level ('debug', 'info', 'warning', 'error', 'critical')
        details (dict, optional): Additional fields merged into the JSON body and logged

    Returns:
        Flask response: JSON error response
    """
    log_func = getattr(logger, log_level, logger.warning)
    if details:
        log_func(f"API Error ({status_code}): {message} - Details: {details}")
    else:
        log_func(f"API Error ({status_code}): {message}")

    body = {'error': message}
    if details:
        body.update(details)
    return jsonify(body), status_code


def handle_api_exception(e, operation="operation", status_code=500):
    """
    Handle exceptions in API endpoints with consistent logging and responses.

    Rolls back the current session so the request leaves no partial writes.

    Args:
        e (Exception): The exception that occurred
        operation (str): Description of the operation being performed
        status_code (int): HTTP status code to return

    Returns:
        Flask response: JSON error response
    """
    logger.error(f"Exception during {operation}: {str(e)}", exc_info=True)
    db.session.rollback()
    return api_error(f"Failed to {operation}", status_code, 'error')


def validate_foreign_key(table_name, column_name, value):
    """
    Validate that a foreign key reference exists.

    Args:
        table_name (str): Name of the table being referenced
        column_name (str): Name of the column being referenced
        value: The value to check for existence

    Returns:
        bool: True if reference exists or value is None, False otherwise
    """
    if value is None:
        return True

    try:
        if table_name == 'patrol_locations':
            return db.session.get(PatrolLocation, value) is not None
        elif table_name == 'checkpoints':
            return db.session.get(Checkpoint, value) is not None
        else:
            logger.warning(f"Unknown table for FK validation: {table_name}")
            return False
    except Exception as e:
        logger.error(f"Error validating FK {table_name}.{column_name}={value}: {e}")
        return False


def get_request_coordinates(args):
    """Read latitude/longitude query parameters without converting them.

    Returns:
        tuple: (latitude, longitude) raw values, possibly None
    """
    return args.get('latitude', args.get('lat')), args.get('longitude', args.get('lon'))


def cascade_delete_checkpoint(checkpoint_id):
    """
    Delete a checkpoint and all its verifications.

    Args:
        checkpoint_id (int): ID of the checkpoint to delete

    Returns:
        dict: Summary of deleted records
    """
    summary = {
        'checkpoints': 0,
        'verifications': 0
    }

    try:
        checkpoint = db.session.get(Checkpoint, checkpoint_id)
        if not checkpoint:
            return summary

        verifications = CheckpointVerification.query.filter_by(checkpoint_id=checkpoint_id).all()
        summary['verifications'] = len(verifications)
        for verification in verifications:
            db.session.delete(verification)

        db.session.delete(checkpoint)
        summary['checkpoints'] = 1

        logger.info(f"Cascading delete completed for checkpoint {checkpoint_id}: {summary}")

    except Exception as e:
        logger.error(f"Error in cascade delete of checkpoint {checkpoint_id}: {e}")
        raise

    return summary


def cascade_delete_location(location_id):
    """
    Delete a patrol location and all its child records (checkpoints, verifications).

    Args:
        location_id (int): ID of the location to delete

    Returns:
        dict: Summary of deleted records
    """
    summary = {
        'locations': 0,
        'checkpoints': 0,
        'verifications': 0
    }

    try:
        location = db.session.get(PatrolLocation, location_id)
        if not location:
            return summary

        checkpoints = Checkpoint.query.filter_by(location_id=location_id).all()
        for checkpoint in checkpoints:
            checkpoint_summary = cascade_delete_checkpoint(checkpoint.id)
            summary['checkpoints'] += checkpoint_summary['checkpoints']
            summary['verifications'] += checkpoint_summary['verifications']

        db.session.delete(location)
        summary['locations'] = 1

        logger.info(f"Cascading delete completed for location {location_id}: {summary}")

    except Exception as e:
        logger.error(f"Error in cascade delete of location {location_id}: {e}")
        raise

    return summary
