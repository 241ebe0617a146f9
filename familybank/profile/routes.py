from flask import current_app, g, jsonify

from familybank.activity.forms import first_error
from familybank.auth.decorators import login_required
from familybank.errors import ValidationError
from familybank.repository import get_repository

from . import bp
from .forms import ProfilePictureForm


def _profile_json(profile):
    return {
        "user": profile.to_json(),
        "family": g.family.to_json(),
        "role": g.role.value,
    }


@bp.route("/", methods=["GET"])
@login_required
def view_profile():
    """Show the caller's profile together with their family."""
    return jsonify(_profile_json(g.profile))


@bp.route("/picture", methods=["POST"])
@login_required
def update_picture():
    form = ProfilePictureForm()
    if not form.validate_on_submit():
        raise ValidationError(first_error(form))

    profile = get_repository().update_user_profile(
        g.profile, profile_image_url=form.picture_url.data.strip()
    )
    g.profile = profile
    current_app.logger.info(f"Profile {profile.id} picture updated")
    return jsonify(_profile_json(profile))
