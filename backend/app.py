"""Flask application factory for the Security Patrol backend."""
from flask import Flask
import logging
from pathlib import Path
from shared.geo import CHECKPOINT_PROXIMITY_THRESHOLD_METERS
from .models import db
from .blueprints import locations, checkpoints, patrol
from .cli import init_db_command, seed_checkpoints_command
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_NEARBY_RADIUS_METERS = 1000.0


def create_app(test_config=None):
    """Flask application factory for the Security Patrol backend.

    Creates and configures a Flask application instance with:
    - SQLAlchemy database integration
    - Blueprint registration for API endpoints
    - CLI command registration
    - Logging configuration

    Args:
        test_config (dict, optional): Configuration overrides for testing

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__, instance_relative_config=True)

    if test_config is None:
        # Load the instance config, if it exists, when not testing
        config_loaded = app.config.from_pyfile('config.py', silent=True)
    else:
        app.config.from_mapping(test_config)
        config_loaded = False

    # Logging needs LOG_DIR from the loaded config
    setup_logging(app)
    logger.info("Starting Flask application initialization")
    if test_config is not None:
        logger.info("Loaded test configuration")
    elif config_loaded:
        logger.info("Loaded configuration from instance/config.py")
    else:
        logger.debug("No instance config file found, using defaults")

    # Ensure the instance folder exists
    try:
        Path(app.instance_path).mkdir(parents=True, exist_ok=True)
    except OSError:
        logger.debug(f"Could not create instance directory: {app.instance_path}")

    # Only set default database URI if not already set (e.g., by tests)
    if 'SQLALCHEMY_DATABASE_URI' not in app.config:
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///patrol.db'
        logger.info(f"Configured database URI: {app.config['SQLALCHEMY_DATABASE_URI']}")
    else:
        logger.info(f"Using existing database URI: {app.config['SQLALCHEMY_DATABASE_URI']}")
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    app.config.setdefault('CHECKPOINT_PROXIMITY_THRESHOLD_METERS', CHECKPOINT_PROXIMITY_THRESHOLD_METERS)
    app.config.setdefault('NEARBY_DEFAULT_RADIUS_METERS', DEFAULT_NEARBY_RADIUS_METERS)
    logger.info(f"Checkpoint proximity threshold: {app.config['CHECKPOINT_PROXIMITY_THRESHOLD_METERS']} m")

    db.init_app(app)
    logger.info("SQLAlchemy database initialized")

    # Register blueprints
    app.register_blueprint(locations.bp)
    logger.debug("Registered locations blueprint")
    app.register_blueprint(checkpoints.bp)
    logger.debug("Registered checkpoints blueprint")
    app.register_blueprint(patrol.bp)
    logger.debug("Registered patrol blueprint")
    logger.info("All API blueprints registered successfully")

    # Register CLI commands
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_checkpoints_command)
    logger.info("CLI commands registered: init-db, seed-checkpoints")

    logger.info("Flask application initialization completed successfully")
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True)
