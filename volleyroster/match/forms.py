"""Forms for the match blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import BooleanField, DateTimeLocalField, Field, ValidationError
from wtforms.validators import Optional

from volleyroster.user.services import MAX_DISPLAY_NAME_LENGTH


class NameListField(Field):
    """A list of names; JSON arrays arrive as repeated form values."""

    def process_formdata(self, valuelist):
        self.data = [str(value) for value in valuelist if value is not None]

    def _value(self):
        return ", ".join(self.data or [])


class SignupForm(FlaskForm):
    """Form for signing up to a match, optionally with guests."""

    asReserve = BooleanField("Join as reserve", default=False)  # noqa: N815
    guests = NameListField("Guests", default=list)

    def validate_guests(self, field):
        """Guest names must be present and short enough to show on a roster."""
        names = [name.strip() for name in field.data or []]
        if any(not name for name in names):
            raise ValidationError("Guest names cannot be blank.")
        if any(len(name) > MAX_DISPLAY_NAME_LENGTH for name in names):
            raise ValidationError(
                f"Guest names are limited to {MAX_DISPLAY_NAME_LENGTH} characters."
            )
        field.data = names


class CreateMatchForm(FlaskForm):
    """Form for scheduling a match; without a date the default slot is used."""

    date = DateTimeLocalField(
        "Date",
        format=["%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S"],
        validators=[Optional()],
    )


class RemoveEntryForm(FlaskForm):
    """Form for an admin removing an entry from either roster."""

    fromReserves = BooleanField("From reserves", default=False)  # noqa: N815
