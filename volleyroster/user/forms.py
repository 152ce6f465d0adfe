"""Forms for the user blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import StringField
from wtforms.validators import Length, Optional

from .services import MAX_DISPLAY_NAME_LENGTH


class DisplayNameForm(FlaskForm):
    """Form for setting or clearing the custom display name."""

    customDisplayName = StringField(  # noqa: N815
        "Display Name",
        validators=[Optional(), Length(max=MAX_DISPLAY_NAME_LENGTH)],
        filters=[lambda value: value.strip() if value else value],
    )
