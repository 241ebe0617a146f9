"""Helpers shared by the auth routes and decorators."""

from flask import current_app, g, jsonify, session

from familybank.identity import identity_store_for, restoration_policy_for
from familybank.repository import get_repository
from familybank.session import (
    SessionContext,
    SessionReconciler,
    SessionStatus,
)


def _log_transition(context, outcome):
    current_app.logger.info(
        f"Session {outcome.status.value}"
        + (f" as {outcome.role.value}" if outcome.role else "")
    )


def build_reconciler(provider=None):
    """Build a reconciler over the cookie session for the current request."""
    context = SessionContext()
    context.subscribe(_log_transition)
    g.session_context = context
    return SessionReconciler(
        repository=get_repository(),
        store=identity_store_for(
            current_app.config["IDENTITY_STORE"],
            session,
            current_app.config.get("IDENTITY_STORE_PATH"),
        ),
        provider=provider,
        context=context,
        restoration_policy=restoration_policy_for(
            current_app.config["RESTORATION_POLICY"]
        ),
        retry_delay=float(current_app.config["IDENTITY_STORE_RETRY_DELAY"]),
    )


def load_session():
    """Restore the caller's session once per request and keep it on ``g``."""
    if "session_outcome" not in g:
        outcome = build_reconciler().restore()
        g.session_outcome = outcome
        g.profile = outcome.profile
        g.family = outcome.family
        g.role = outcome.role
    return g.session_outcome


def outcome_response(outcome, **extra):
    """Render a session outcome as a JSON response with a matching status."""
    data = outcome.to_json()
    data.update(extra)
    if outcome.status is SessionStatus.REJECTED:
        return jsonify(data), 409
    if outcome.error is not None:
        kind = getattr(outcome.error, "kind", None)
        if kind is not None:
            data["error"] = getattr(kind, "value", kind)
        return jsonify(data), outcome.error.status_code
    return jsonify(data), 200
