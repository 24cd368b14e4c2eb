"""Input validation utilities."""
import re
import bleach


class ValidationError(Exception):
    """Raised when input validation fails."""
    pass


class Validator:
    """Input validation utilities."""

    # Officer ids come from the identity provider: letters, digits, dash, underscore, dot, plus
    OFFICER_ID_PATTERN = re.compile(r'^[A-Za-z0-9_.+-]{1,100}$')
    MAX_COORDINATE_DECIMALS = 10

    @staticmethod
    def validate_required(value, field_name):
        """Validate that a required field is not empty."""
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{field_name} is required")
        return value

    @staticmethod
    def validate_string_length(value, field_name, min_length=0, max_length=None):
        """Validate string length constraints."""
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string")

        if len(value) < min_length:
            raise ValidationError(f"{field_name} must be at least {min_length} characters")

        if max_length and len(value) > max_length:
            raise ValidationError(f"{field_name} must be no more than {max_length} characters")

        return value.strip()

    @staticmethod
    def _parse_coordinate(value, label):
        """Convert a single coordinate to float, checking string precision."""
        try:
            if isinstance(value, bool):
                raise TypeError(label)
            if isinstance(value, str):
                stripped = value.strip()
                if '.' in stripped:
                    decimal_part = stripped.split('.', 1)[1].rstrip('0')
                    if decimal_part and len(decimal_part) > Validator.MAX_COORDINATE_DECIMALS:
                        raise ValidationError(
                            f"{label} must not have more than {Validator.MAX_COORDINATE_DECIMALS} decimal places"
                        )
                return float(stripped)
            return float(value)
        except ValueError:
            raise ValidationError(f"{label} must be a valid number")
        except TypeError:
            raise ValidationError(f"{label} must be a number or numeric string")

    @staticmethod
    def validate_coordinates(lat, lng):
        """Validate GPS coordinates.

        Out-of-range values are rejected rather than clamped. NaN fails both
        range checks and is rejected too.

        Returns:
            tuple: (latitude, longitude) as floats
        """
        lat_val = Validator._parse_coordinate(lat, "Latitude")
        lng_val = Validator._parse_coordinate(lng, "Longitude")

        if not (-90 <= lat_val <= 90):
            raise ValidationError("Latitude must be between -90 and 90")

        if not (-180 <= lng_val <= 180):
            raise ValidationError("Longitude must be between -180 and 180")

        return lat_val, lng_val

    @staticmethod
    def validate_numeric_range(value, field_name, min_val=None, max_val=None):
        """Validate numeric value within range."""
        try:
            num_val = float(value) if isinstance(value, str) else value

            if min_val is not None and num_val < min_val:
                raise ValidationError(f"{field_name} must be at least {min_val}")

            if max_val is not None and num_val > max_val:
                raise ValidationError(f"{field_name} must be no more than {max_val}")

            return num_val
        except (ValueError, TypeError):
            raise ValidationError(f"{field_name} must be a valid number")

    @staticmethod
    def validate_id(value, field_name):
        """Validate a positive integer primary key reference."""
        Validator.validate_required(value, field_name)
        if isinstance(value, bool):
            raise ValidationError(f"{field_name} must be an integer")
        try:
            id_val = int(value)
        except (ValueError, TypeError):
            raise ValidationError(f"{field_name} must be an integer")
        if isinstance(value, float) and value != id_val:
            raise ValidationError(f"{field_name} must be an integer")
        if id_val <= 0:
            raise ValidationError(f"{field_name} must be greater than zero")
        return id_val

    @staticmethod
    def validate_radius(value, field_name="Radius"):
        """Validate a search radius in meters (must be positive)."""
        radius = Validator.validate_numeric_range(value, field_name)
        if radius is None or not radius > 0:
            raise ValidationError(f"{field_name} must be greater than zero meters")
        return float(radius)

    @staticmethod
    def validate_officer_id(officer_id):
        """Validate an officer identifier."""
        Validator.validate_required(officer_id, "Officer ID")
        if not isinstance(officer_id, str):
            raise ValidationError("Officer ID must be a string")
        officer_id = officer_id.strip()
        if not Validator.OFFICER_ID_PATTERN.match(officer_id):
            raise ValidationError("Officer ID contains invalid characters")
        return officer_id

    @staticmethod
    def sanitize_html(text):
        """Secure HTML sanitization using bleach library.

        Plain text skips bleach parsing entirely.
        """
        if not text:
            return text

        if '<' not in text and '>' not in text and '&' not in text:
            return text

        # Names and addresses never need markup
        return bleach.clean(text, tags=[], attributes={}, strip=True)

    @staticmethod
    def validate_location_data(data):
        """Validate patrol location data."""
        validated = {}

        validated['name'] = Validator.sanitize_html(Validator.validate_required(
            Validator.validate_string_length(data.get('name', ''), 'Location name', 1, 200),
            'Location name'
        ))

        if 'address' in data:
            validated['address'] = Validator.sanitize_html(
                Validator.validate_string_length(data['address'] or '', 'Location address', 0, 500)
            )

        if 'latitude' in data or 'longitude' in data:
            validated['latitude'], validated['longitude'] = Validator.validate_coordinates(
                data.get('latitude'), data.get('longitude')
            )

        return validated

    @staticmethod
    def validate_checkpoint_data(data):
        """Validate checkpoint data. Coordinates are mandatory for checkpoints."""
        validated = {}

        validated['name'] = Validator.sanitize_html(Validator.validate_required(
            Validator.validate_string_length(data.get('name', ''), 'Checkpoint name', 1, 200),
            'Checkpoint name'
        ))

        validated['location_id'] = Validator.validate_id(data.get('location_id'), 'Location ID')

        validated['latitude'], validated['longitude'] = Validator.validate_coordinates(
            Validator.validate_required(data.get('latitude'), 'Latitude'),
            Validator.validate_required(data.get('longitude'), 'Longitude')
        )

        if 'remote_id' in data:
            validated['remote_id'] = Validator.validate_string_length(
                data['remote_id'] or '', 'Remote ID', 0, 100
            )

        return validated
