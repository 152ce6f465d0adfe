"""Forms for the history blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import BooleanField, ValidationError


class IgnoreSessionForm(FlaskForm):
    """Form for excluding a session from, or restoring it to, the stats."""

    ignored = BooleanField("Ignored from stats")

    def validate_ignored(self, field):
        if not field.raw_data:
            raise ValidationError("This field is required.")
