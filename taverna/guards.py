"""Who is calling, and are they allowed to do this?

Every protected route is wrapped in @authenticated, which hands the
handler an Identity as its first argument. From there on, code works with
the Identity only and never touches flask_login.current_user, so the
permission checks below can be called (and tested) with any identity.

Guards always run before a handler writes anything.
"""

from dataclasses import dataclass
from functools import wraps

from flask import has_request_context, request
from flask_login import current_user

from taverna import db, login_manager
from taverna.errors import ForbiddenError, NotFoundError
from taverna.models import AuditLog, Campaign, CampaignMember, GameSession


@dataclass(frozen=True)
class Identity:
    user_id: int
    display_name: str
    role: str

    @property
    def is_admin(self):
        return self.role in ('ADMIN', 'MODERATOR')

    @classmethod
    def from_user(cls, user):
        return cls(user_id=user.id, display_name=user.display_name, role=user.role)


def authenticated(f):
    """Decorator: 401 unless logged in; passes the caller's Identity first."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not current_user.is_authenticated:
            # Calls the unauthorized_handler registered in create_app (raises AuthError)
            return login_manager.unauthorized()
        return f(Identity.from_user(current_user), *args, **kwargs)
    return decorated


def require_campaign_member(campaign_id, identity):
    """Load a campaign the caller belongs to.

    Returns (campaign, is_dm, role). 404 if the campaign doesn't exist,
    403 if the caller is neither its DM nor a member.
    """
    campaign = db.session.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFoundError('Campaign not found')

    if campaign.dm_id == identity.user_id:
        return campaign, True, 'DM'

    membership = CampaignMember.query.filter_by(
        campaign_id=campaign_id, user_id=identity.user_id).first()
    if membership is None:
        raise ForbiddenError('You are not a member of this campaign')
    return campaign, False, membership.role


def require_dm(campaign_id, identity, message='Only the DM can do this'):
    campaign, is_dm, _role = require_campaign_member(campaign_id, identity)
    if not is_dm:
        raise ForbiddenError(message)
    return campaign


def require_session_member(session_id, identity, dm_only=False):
    """Load a game session through its campaign's membership check.

    Returns (session, is_dm).
    """
    session = db.session.get(GameSession, session_id)
    if session is None:
        raise NotFoundError('Session not found')
    if dm_only:
        require_dm(session.campaign_id, identity, 'Only the DM can run the session')
        return session, True
    _campaign, is_dm, _role = require_campaign_member(session.campaign_id, identity)
    return session, is_dm


def require_admin(identity, admin_only=False):
    """Platform staff only. admin_only=True excludes moderators."""
    allowed = identity.role == 'ADMIN' if admin_only else identity.is_admin
    if not allowed:
        raise ForbiddenError('Admin access required')


def admin_required(f):
    """Decorator form of require_admin for the admin blueprint. Stack it
    under @authenticated so the Identity is already the first argument."""
    @wraps(f)
    def decorated(identity, *args, **kwargs):
        require_admin(identity)
        return f(identity, *args, **kwargs)
    return decorated


def audit(identity, action, target_type=None, target_id=None, details=None):
    """Record an admin action. Added to the current transaction; the caller commits."""
    entry = AuditLog(
        user_id=identity.user_id,
        action=action,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else None,
        details=details,
        ip_address=request.remote_addr if has_request_context() else None,
    )
    db.session.add(entry)
    return entry
