import click
import json
import logging
from flask.cli import with_appcontext
from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from typing import List
from .models import db, PatrolLocation, Checkpoint
from shared.schemas import SeedLocation, format_pydantic_errors
from shared.validation import Validator

logger = logging.getLogger(__name__)


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create the patrol tables if they do not exist."""
    logger.info("Starting database initialization")
    db.create_all()
    logger.info("Database tables created successfully")
    click.echo('Initialized the database.')


@click.command('seed-checkpoints')
@click.argument('seed_file', type=click.File('r'))
@with_appcontext
def seed_checkpoints_command(seed_file):
    """Load patrol locations and their checkpoints from a JSON file.

    The file holds a list of locations, each with a nested "checkpoints"
    list. Locations that already exist by name get only the checkpoints
    they are missing (matched by name).
    """
    try:
        raw = json.load(seed_file)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Seed file is not valid JSON: {e}")

    try:
        seed_locations = TypeAdapter(List[SeedLocation]).validate_python(raw)
    except PydanticValidationError as e:
        raise click.ClickException(f"Invalid seed data: {format_pydantic_errors(e)}")

    db.create_all()
    locations_added = 0
    checkpoints_added = 0

    for seed in seed_locations:
        name = Validator.sanitize_html(seed.name.strip())
        location = PatrolLocation.query.filter_by(name=name).first()
        if location is None:
            location = PatrolLocation(
                name=name,
                address=Validator.sanitize_html(seed.address or ''),
                latitude=seed.latitude,
                longitude=seed.longitude,
            )
            db.session.add(location)
            db.session.flush()
            locations_added += 1
            logger.debug(f"Added patrol location '{location.name}' with ID {location.id}")

        existing_names = {c.name for c in location.checkpoints}
        for seed_checkpoint in seed.checkpoints:
            checkpoint_name = Validator.sanitize_html(seed_checkpoint.name.strip())
            if checkpoint_name in existing_names:
                continue
            db.session.add(Checkpoint(
                location_id=location.id,
                name=checkpoint_name,
                latitude=seed_checkpoint.latitude,
                longitude=seed_checkpoint.longitude,
                remote_id=seed_checkpoint.remote_id or '',
            ))
            existing_names.add(checkpoint_name)
            checkpoints_added += 1

    db.session.commit()
    logger.info(f"Seeded {locations_added} locations and {checkpoints_added} checkpoints")
    click.echo(f'Seeded {locations_added} locations and {checkpoints_added} checkpoints.')
