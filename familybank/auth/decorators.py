"""Decorators for the auth blueprint."""

from functools import wraps

from familybank.errors import AccessDenied, AuthenticationRequired
from familybank.session import Role

from .utils import load_session


def login_required(f=None, creator_required=False, member_required=False):
    """Reject the request unless the stored identity restores to a session.

    The restored profile, family and role are available as ``g.profile``,
    ``g.family`` and ``g.role``.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(creator_required=True)
    def creator_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            outcome = load_session()
            if not outcome.is_authenticated:
                if outcome.error is not None:
                    raise outcome.error
                raise AuthenticationRequired()
            if creator_required and outcome.role is not Role.CREATOR:
                raise AccessDenied("Only the family creator can do that.")
            if member_required and outcome.role is not Role.MEMBER:
                raise AccessDenied("Only family members can do that.")
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
