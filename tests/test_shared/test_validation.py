"""Tests for shared validation utilities and schemas."""
import math
import pytest
from datetime import datetime
from pydantic import ValidationError as PydanticValidationError
from shared.validation import Validator, ValidationError
from shared.schemas import VerificationRequest, CheckpointResponse, SeedLocation
from shared.enums import VerificationStatus


class TestValidator:
    """Test validation utilities."""

    def test_validate_required_failure(self):
        """Test required field validation failures."""
        with pytest.raises(ValidationError, match="test_field is required"):
            Validator.validate_required("", "test_field")

        with pytest.raises(ValidationError, match="test_field is required"):
            Validator.validate_required(None, "test_field")

        with pytest.raises(ValidationError, match="test_field is required"):
            Validator.validate_required("   ", "test_field")

    def test_validate_string_length(self):
        assert Validator.validate_string_length("  gate  ", "field", 1, 10) == "gate"

        with pytest.raises(ValidationError, match="field must be no more than 3 characters"):
            Validator.validate_string_length("testing", "field", 1, 3)

    def test_validate_coordinates_success(self):
        """Test successful coordinate validation."""
        assert Validator.validate_coordinates(34.0522, -118.2437) == (34.0522, -118.2437)
        assert Validator.validate_coordinates("34.0522", "-118.2437") == (34.0522, -118.2437)
        assert Validator.validate_coordinates(90, 180) == (90.0, 180.0)
        assert Validator.validate_coordinates(-90, -180) == (-90.0, -180.0)

    def test_validate_coordinates_out_of_range(self):
        """Out-of-range coordinates are rejected, not clamped."""
        with pytest.raises(ValidationError, match="Latitude must be between -90 and 90"):
            Validator.validate_coordinates(90.5, 0)

        with pytest.raises(ValidationError, match="Longitude must be between -180 and 180"):
            Validator.validate_coordinates(0, -180.1)

    def test_validate_coordinates_nan(self):
        with pytest.raises(ValidationError, match="Latitude"):
            Validator.validate_coordinates(math.nan, 0)

    def test_validate_coordinates_bad_types(self):
        with pytest.raises(ValidationError, match="Latitude must be a valid number"):
            Validator.validate_coordinates("north", 0)

        with pytest.raises(ValidationError, match="Longitude must be a number or numeric string"):
            Validator.validate_coordinates(0, None)

        with pytest.raises(ValidationError, match="Latitude must be a number or numeric string"):
            Validator.validate_coordinates(True, 0)

    def test_validate_coordinates_precision(self):
        with pytest.raises(ValidationError, match="decimal places"):
            Validator.validate_coordinates("34.12345678901", "0")

    def test_validate_id(self):
        assert Validator.validate_id("7", "Location ID") == 7

        for bad in (0, -1, "abc", 1.5, True):
            with pytest.raises(ValidationError):
                Validator.validate_id(bad, "Location ID")

    def test_validate_radius(self):
        assert Validator.validate_radius("250") == 250.0

        with pytest.raises(ValidationError, match="greater than zero"):
            Validator.validate_radius(0)

    def test_validate_officer_id(self):
        assert Validator.validate_officer_id(" officer-17 ") == "officer-17"

        with pytest.raises(ValidationError, match="Officer ID is required"):
            Validator.validate_officer_id("")

        with pytest.raises(ValidationError, match="invalid characters"):
            Validator.validate_officer_id("officer 17; DROP TABLE")

    def test_sanitize_html(self):
        assert Validator.sanitize_html("North Gate") == "North Gate"
        assert "<script>" not in Validator.sanitize_html("<script>alert(1)</script>Gate")

    def test_validate_location_data(self):
        data = Validator.validate_location_data({
            'name': '  City Hall ',
            'address': '200 N Spring St',
            'latitude': '34.0537',
            'longitude': -118.2428,
        })
        assert data == {
            'name': 'City Hall',
            'address': '200 N Spring St',
            'latitude': 34.0537,
            'longitude': -118.2428,
        }

        with pytest.raises(ValidationError, match="Location name is required"):
            Validator.validate_location_data({'name': '   '})

    def test_validate_checkpoint_data(self):
        data = Validator.validate_checkpoint_data({
            'name': 'North Gate',
            'location_id': 3,
            'latitude': 34.0522,
            'longitude': -118.2437,
            'remote_id': 'NG-1',
        })
        assert data['location_id'] == 3
        assert data['remote_id'] == 'NG-1'

        with pytest.raises(ValidationError, match="Latitude is required"):
            Validator.validate_checkpoint_data({'name': 'North Gate', 'location_id': 3})

        with pytest.raises(ValidationError, match="Location ID is required"):
            Validator.validate_checkpoint_data({'name': 'North Gate', 'latitude': 1, 'longitude': 1})


class TestSchemas:
    """Pydantic request and response schemas."""

    def test_verification_request(self):
        request = VerificationRequest(checkpoint_id=5, officer_id='officer-17',
                                      latitude='34.0522', longitude=-118.2437)
        assert request.latitude == 34.0522

    def test_verification_request_rejects_bad_checkpoint_id(self):
        with pytest.raises(PydanticValidationError):
            VerificationRequest(checkpoint_id=0, officer_id='officer-17', latitude=0, longitude=0)

    def test_verification_request_rejects_out_of_range_coordinates(self):
        with pytest.raises(ValidationError, match="Latitude"):
            VerificationRequest(checkpoint_id=1, officer_id='officer-17', latitude=91, longitude=0)

    def test_verification_request_rejects_bad_officer(self):
        with pytest.raises(ValidationError, match="invalid characters"):
            VerificationRequest(checkpoint_id=1, officer_id='bad officer', latitude=0, longitude=0)

    def test_checkpoint_response_verification_state(self):
        verified = CheckpointResponse(id=1, location_id=1, name='Gate', latitude=0, longitude=0,
                                      is_verified=True, verification_time=datetime(2024, 1, 1, 8, 0))
        assert verified.is_verified

        with pytest.raises(PydanticValidationError):
            CheckpointResponse(id=1, location_id=1, name='Gate', latitude=0, longitude=0,
                               is_verified=True, verification_time=None)

        with pytest.raises(PydanticValidationError):
            CheckpointResponse(id=1, location_id=1, name='Gate', latitude=0, longitude=0,
                               is_verified=False, verification_time=datetime(2024, 1, 1, 8, 0))

    def test_seed_location_defaults(self):
        seed = SeedLocation(name='Warehouse', checkpoints=[
            {'name': 'Dock', 'latitude': 1.0, 'longitude': 2.0}
        ])
        assert seed.address == ''
        assert seed.checkpoints[0].remote_id == ''

    def test_verification_status_values(self):
        assert VerificationStatus.VERIFIED.value == 'verified'
        assert VerificationStatus.ALREADY_VERIFIED.value == 'already_verified'
