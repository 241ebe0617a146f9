"""Forms for the activity blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import DateField, FloatField, SelectMultipleField, StringField
from wtforms.validators import Length, Optional, URL


class ActivityForm(FlaskForm):
    """Form for creating a new activity.

    Only parsing happens here. The business rules live on ``ActivityDraft`` so
    they apply the same way to every caller.
    """

    title = StringField("Title", validators=[Optional(), Length(max=200)])
    money_goal = FloatField("Money Goal", validators=[Optional()])
    end_date = DateField("End Date", validators=[Optional()])
    assigned_to = SelectMultipleField(
        "Assign To", choices=[], validate_choice=False, validators=[Optional()]
    )
    picture_url = StringField("Picture URL", validators=[Optional(), URL()])


class SavingsForm(FlaskForm):
    """Form for logging a savings entry."""

    amount_saved = FloatField("Amount", validators=[Optional()])
    notes = StringField("Notes", validators=[Optional(), Length(max=500)])


def first_error(form):
    """Return the first field error of a form that failed validation."""
    for name, errors in form.errors.items():
        if errors:
            label = getattr(form, name).label.text if hasattr(form, name) else name
            return f"{label}: {errors[0]}"
    return "Invalid submission."
