"""Forms for the admin blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import SelectField
from wtforms.validators import DataRequired

from volleyroster.user.models import Role


class RoleForm(FlaskForm):
    """Form for changing a user's role. The super-admin role is not assignable."""

    role = SelectField(
        "Role",
        choices=[
            (Role.USER.value, "User"),
            (Role.CAPITANA.value, "Capitana"),
            (Role.ADMIN.value, "Admin"),
        ],
        validators=[DataRequired()],
    )
