"""Forms for the profile blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import StringField
from wtforms.validators import DataRequired, Length, URL


class ProfilePictureForm(FlaskForm):
    """Form for replacing the profile picture."""

    picture_url = StringField(
        "Picture URL", validators=[DataRequired(), URL(), Length(max=2048)]
    )
