from flask import current_app, request
from flask_wtf.csrf import generate_csrf

from familybank.identity import FirebaseIdentityProvider
from familybank.session import Flow

from . import bp
from .utils import build_reconciler, outcome_response


def _provider_from(payload):
    """Wrap the ID token the client obtained from its sign-in step."""
    return FirebaseIdentityProvider(
        token_source=lambda: payload.get("idToken"),
        full_name_hint=payload.get("fullName"),
        email_hint=payload.get("email"),
    )


@bp.route("/session", methods=["GET"])
def current_session():
    """
    Restore the session from the identity kept in the session cookie.
    No sign-in prompt is involved; an unknown identity simply yields
    an unauthenticated session.
    """
    outcome = build_reconciler().restore()
    return outcome_response(outcome, csrfToken=generate_csrf())


@bp.route("/create-family", methods=["POST"])
def create_family():
    """Sign in as the creator of a new or existing family."""
    payload = request.get_json(silent=True) or {}
    outcome = build_reconciler(_provider_from(payload)).resolve(Flow.CREATE_FAMILY)
    return outcome_response(outcome)


@bp.route("/join-family", methods=["POST"])
def join_family():
    """Sign in as a member of the family owning the invite code."""
    payload = request.get_json(silent=True) or {}
    outcome = build_reconciler(_provider_from(payload)).resolve(
        Flow.JOIN_FAMILY, payload.get("inviteCode")
    )
    return outcome_response(outcome)


@bp.route("/logout", methods=["POST"])
def logout():
    """
    Forget the stored identity. Signing out of the identity provider
    itself is up to the client.
    """
    outcome = build_reconciler().sign_out()
    current_app.logger.info("User logged out")
    return outcome_response(outcome)
