import datetime

from flask import g, jsonify

from familybank.auth.decorators import login_required
from familybank.errors import ValidationError
from familybank.repository import get_repository
from familybank.session import Role

from . import bp
from .forms import ActivityForm, SavingsForm, first_error
from .models import ActivityDraft, ActivityProgress, SavingsDraft
from .services import ActivityService


def _end_of_day(date):
    """Turn a picked calendar date into the last second of that day in UTC."""
    if date is None:
        return None
    return datetime.datetime.combine(
        date, datetime.time(23, 59, 59), tzinfo=datetime.timezone.utc
    )


@bp.route("/", methods=["GET"])
@login_required
def list_activities():
    """
    List activities with progress.
    The creator sees every family activity with everyone's savings;
    a member sees assigned activities with their own savings.
    """
    service = ActivityService(get_repository())
    if g.role is Role.CREATOR:
        progress = service.family_progress(g.family)
    else:
        progress = service.member_progress(g.profile)
    return jsonify({"activities": [p.to_json() for p in progress]})


@bp.route("/", methods=["POST"])
@login_required(creator_required=True)
def create_activity():
    form = ActivityForm()
    if not form.validate_on_submit():
        raise ValidationError(first_error(form))

    draft = ActivityDraft(
        title=form.title.data or "",
        money_goal=form.money_goal.data,
        end_date=_end_of_day(form.end_date.data),
        assigned_to=form.assigned_to.data or [],
        picture_url=form.picture_url.data,
    )
    activity = ActivityService(get_repository()).create_activity(
        g.family, g.role, draft
    )
    return jsonify(ActivityProgress.of(activity, []).to_json()), 201


@bp.route("/<string:activity_id>", methods=["GET"])
@login_required
def view_activity(activity_id):
    """Show one activity with the savings the caller may see."""
    service = ActivityService(get_repository())
    activity = service.get_activity(activity_id, g.profile, g.family, g.role)
    progress = service.progress_for(activity, g.profile, g.role)
    return jsonify(progress.to_json(include_entries=True))


@bp.route("/<string:activity_id>/savings", methods=["POST"])
@login_required(member_required=True)
def log_savings(activity_id):
    form = SavingsForm()
    if not form.validate_on_submit():
        raise ValidationError(first_error(form))

    service = ActivityService(get_repository())
    activity = service.get_activity(activity_id, g.profile, g.family, g.role)
    draft = SavingsDraft(amount_saved=form.amount_saved.data, notes=form.notes.data or "")
    entry = service.log_savings(activity, g.profile, g.role, draft)
    progress = service.progress_for(activity, g.profile, g.role)
    return jsonify({"entry": entry.to_json(), "activity": progress.to_json()}), 201
