"""Platform back-office: users, campaigns, reports, analytics, the audit
trail and settings.

Every route is platform staff only (ADMIN or MODERATOR), except filing a
report, which any signed-in user may do. A few destructive ones are ADMIN only. Every change made here writes one AuditLog row in the
same transaction as the change itself.
"""

import logging
from datetime import datetime, timedelta

from flask import Blueprint, request
from sqlalchemy import desc, func, or_

from taverna import db, limiter
from taverna.api_utils import (
    LIKE_ESCAPE, api_success, created, int_arg, like_pattern, page_args, pagination, validate_body,
)
from taverna.errors import ForbiddenError, NotFoundError, ValidationError
from taverna.guards import admin_required, audit, authenticated, require_admin
from taverna.models import (
    AppSetting, AuditLog, Campaign, CampaignMember, Character, ChatMessage,
    CombatLogEntry, EncounterTemplate, GameSession, InitiativeEntry, LoreEntry, MapToken,
    Report, RollableTable, User,
)
from taverna.schemas import AdminUserUpdate, ReportCreate, ReportResolve, SettingsUpdate

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError('User not found')
    return user


def _get_campaign_or_404(campaign_id):
    campaign = db.session.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFoundError('Campaign not found')
    return campaign


def _settings_dict():
    values = AppSetting.get_all_dict()
    return {
        'allowSignup': values.get('allow_signup') == 'true',
        'maintenanceMessage': values.get('maintenance_message') or '',
    }


# ── Dashboard ────────────────────────────────────────────────────────────────

@admin_bp.route('/dashboard')
@authenticated
@admin_required
def dashboard(identity):
    now = datetime.utcnow()
    today = datetime(now.year, now.month, now.day)
    week_ago = today - timedelta(days=7)
    month_ago = today - timedelta(days=30)

    overview = {
        'totalUsers': User.query.count(),
        'newUsersToday': User.query.filter(User.created_at >= today).count(),
        'newUsersWeek': User.query.filter(User.created_at >= week_ago).count(),
        'newUsersMonth': User.query.filter(User.created_at >= month_ago).count(),
        'bannedUsers': User.query.filter_by(is_banned=True).count(),
        'totalCampaigns': Campaign.query.count(),
        'activeCampaigns': Campaign.query.filter_by(status='ACTIVE').count(),
        'totalCharacters': Character.query.count(),
        'totalMessages': ChatMessage.query.count(),
        'messagesWeek': ChatMessage.query.filter(ChatMessage.created_at >= week_ago).count(),
        'totalSessions': GameSession.query.count(),
        'liveSessions': GameSession.query.filter_by(status='LIVE').count(),
    }

    # Sign-ups per day for the last week
    registrations_by_day = _per_day(
        created_at for (created_at,) in
        db.session.query(User.created_at).filter(User.created_at >= week_ago))

    member_count = func.count(CampaignMember.id).label('member_count')
    top = db.session.query(Campaign, member_count) \
        .outerjoin(CampaignMember, CampaignMember.campaign_id == Campaign.id) \
        .group_by(Campaign.id) \
        .order_by(desc('member_count'), Campaign.id) \
        .limit(5).all()
    top_campaigns = [{
        'id': campaign.id,
        'name': campaign.name,
        'status': campaign.status,
        'memberCount': count,
        'createdAt': campaign.to_dict()['createdAt'],
    } for campaign, count in top]

    recent_audit = AuditLog.query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(10).all()

    return api_success({
        'overview': overview,
        'registrationsByDay': registrations_by_day,
        'topCampaigns': top_campaigns,
        'recentAudit': [a.to_dict() for a in recent_audit],
    })


# ── Analytics ────────────────────────────────────────────────────────────────

def _per_day(timestamps):
    """Count datetimes per calendar day, e.g. {"2025-03-01": 4}."""
    counts = {}
    for created_at in timestamps:
        day = created_at.strftime('%Y-%m-%d')
        counts[day] = counts.get(day, 0) + 1
    return counts


@admin_bp.route('/analytics')
@authenticated
@admin_required
def analytics(identity):
    days = int_arg('days', 30, minimum=1, maximum=365)
    since = datetime.utcnow() - timedelta(days=days)

    user_rows = db.session.query(User.created_at).filter(User.created_at >= since).all()

    message_rows = db.session.query(ChatMessage.created_at, ChatMessage.type) \
        .filter(ChatMessage.created_at >= since).all()
    message_by_type = {}
    for _created_at, kind in message_rows:
        message_by_type[kind] = message_by_type.get(kind, 0) + 1

    campaign_rows = db.session.query(Campaign.created_at, Campaign.status) \
        .filter(Campaign.created_at >= since).all()
    campaigns_by_status = {}
    for _created_at, status in campaign_rows:
        campaigns_by_status[status] = campaigns_by_status.get(status, 0) + 1

    sessions_by_status = dict(
        db.session.query(GameSession.status, func.count(GameSession.id))
        .filter(GameSession.created_at >= since)
        .group_by(GameSession.status).all())

    # Most talkative users of all time
    message_count = func.count(ChatMessage.id).label('message_count')
    top = db.session.query(User, message_count) \
        .outerjoin(ChatMessage, ChatMessage.sender_id == User.id) \
        .group_by(User.id) \
        .order_by(desc('message_count'), User.id) \
        .limit(10).all()
    top_users = []
    for user, count in top:
        private = user.to_dict(private=True)
        data = {key: private[key] for key in ('id', 'displayName', 'email', 'image', 'createdAt')}
        data['_count'] = {
            'chatMessages': count,
            'characters': len(user.characters),
            'ownedCampaigns': len(user.owned_campaigns),
        }
        top_users.append(data)

    roles = db.session.query(User.role, func.count(User.id)) \
        .group_by(User.role).order_by(User.role).all()

    return api_success({
        'period': {'days': days, 'since': since.isoformat() + 'Z'},
        'userGrowth': _per_day(created_at for (created_at,) in user_rows),
        'messageVolume': _per_day(created_at for created_at, _kind in message_rows),
        'messageByType': message_by_type,
        'campaignGrowth': _per_day(created_at for created_at, _status in campaign_rows),
        'campaignsByStatus': campaigns_by_status,
        'sessionsByStatus': sessions_by_status,
        'topUsers': top_users,
        'roleDistribution': [{'role': role, 'count': count} for role, count in roles],
    })


# ── Users ────────────────────────────────────────────────────────────────────

@admin_bp.route('/users')
@authenticated
@admin_required
def list_users(identity):
    page, limit, offset = page_args()
    query = User.query
    search = request.args.get('search', '').strip()
    if search:
        pattern = like_pattern(search)
        query = query.filter(or_(User.email.ilike(pattern, escape=LIKE_ESCAPE),
                                 User.display_name.ilike(pattern, escape=LIKE_ESCAPE)))

    total = query.count()
    users = query.order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(limit).all()
    return api_success({
        'users': [u.to_dict(private=True) for u in users],
        'pagination': pagination(page, limit, total),
    })


@admin_bp.route('/users/<int:user_id>')
@authenticated
@admin_required
def get_user(identity, user_id):
    user = _get_user_or_404(user_id)
    data = user.to_dict(private=True)
    data['_count'] = {
        'ownedCampaigns': len(user.owned_campaigns),
        'memberships': len(user.memberships),
        'characters': len(user.characters),
        'chatMessages': ChatMessage.query.filter_by(sender_id=user.id).count(),
        'auditLogs': AuditLog.query.filter_by(user_id=user.id).count(),
    }
    data['ownedCampaigns'] = [{'id': c.id, 'name': c.name, 'status': c.status}
                              for c in user.owned_campaigns[:10]]
    data['characters'] = [{'id': c.id, 'name': c.name, 'class': c.class_name, 'level': c.level}
                          for c in user.characters[:10]]
    return api_success(data)


@admin_bp.route('/users/<int:user_id>', methods=['PATCH'])
@authenticated
@admin_required
def update_user(identity, user_id):
    data = validate_body(AdminUserUpdate)
    changes = data.model_dump(exclude_unset=True)

    # Don't let an admin lock themselves out
    if user_id == identity.user_id:
        if changes.get('role') and changes['role'] != identity.role:
            raise ForbiddenError('You cannot change your own role')
        if changes.get('is_banned'):
            raise ForbiddenError('You cannot ban yourself')

    user = _get_user_or_404(user_id)

    # Moderators can ban and rename regular users, nothing more
    if user.role == 'ADMIN' and identity.role != 'ADMIN':
        raise ForbiddenError('Moderators cannot edit admins')
    if changes.get('role') and identity.role != 'ADMIN':
        raise ForbiddenError('Only admins can change roles')

    details = {}
    if changes.get('display_name'):
        user.display_name = changes['display_name'].strip()
        details['displayName'] = user.display_name
    if changes.get('role'):
        user.role = changes['role']
        details['role'] = user.role
    if changes.get('is_banned') is not None:
        user.is_banned = changes['is_banned']
        user.banned_at = datetime.utcnow() if user.is_banned else None
        user.ban_reason = (changes.get('ban_reason') or 'Banned by admin') if user.is_banned else None
        details['isBanned'] = user.is_banned
        details['banReason'] = user.ban_reason

    audit(identity, 'user.update', 'User', user.id, details)
    db.session.commit()
    logger.info('Admin %s updated user %s: %s', identity.user_id, user.id, details)
    return api_success(user.to_dict(private=True))


def _detach_user(user_id):
    """Clear references to a user from rows that outlive them."""
    ChatMessage.query.filter_by(sender_id=user_id).update({'sender_id': None})
    AuditLog.query.filter_by(user_id=user_id).update({'user_id': None})
    RollableTable.query.filter_by(created_by=user_id).update({'created_by': None})
    LoreEntry.query.filter_by(created_by_id=user_id).update({'created_by_id': None})
    CombatLogEntry.query.filter_by(actor_id=user_id).update({'actor_id': None})
    EncounterTemplate.query.filter_by(created_by=user_id).update({'created_by': None})
    Report.query.filter_by(reporter_id=user_id).update({'reporter_id': None})
    Report.query.filter_by(resolved_by_id=user_id).update({'resolved_by_id': None})

    # Their characters are about to go; initiative entries and tokens stay
    character_ids = [c.id for c in Character.query.filter_by(player_id=user_id)]
    if character_ids:
        InitiativeEntry.query.filter(InitiativeEntry.character_id.in_(character_ids)) \
            .update({'character_id': None}, synchronize_session=False)
        MapToken.query.filter(MapToken.character_id.in_(character_ids)) \
            .update({'character_id': None}, synchronize_session=False)


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@authenticated
@admin_required
def delete_user(identity, user_id):
    require_admin(identity, admin_only=True)
    if user_id == identity.user_id:
        raise ForbiddenError('You cannot delete your own account')

    user = _get_user_or_404(user_id)
    if user.role == 'ADMIN':
        raise ForbiddenError('Admins cannot be deleted')

    email = user.email
    _detach_user(user.id)
    db.session.delete(user)
    audit(identity, 'user.delete', 'User', user_id, {'email': email})
    db.session.commit()

    logger.info('Admin %s deleted user %s', identity.user_id, user_id)
    return api_success({'deleted': True})


# ── Campaigns ────────────────────────────────────────────────────────────────

@admin_bp.route('/campaigns')
@authenticated
@admin_required
def list_campaigns(identity):
    page, limit, offset = page_args()
    query = Campaign.query
    search = request.args.get('search', '').strip()
    if search:
        query = query.filter(Campaign.name.ilike(like_pattern(search), escape=LIKE_ESCAPE))

    total = query.count()
    campaigns = query.order_by(Campaign.created_at.desc(), Campaign.id.desc()) \
        .offset(offset).limit(limit).all()
    return api_success({
        'campaigns': [c.to_dict() for c in campaigns],
        'pagination': pagination(page, limit, total),
    })


@admin_bp.route('/campaigns/<int:campaign_id>')
@authenticated
@admin_required
def get_campaign(identity, campaign_id):
    campaign = _get_campaign_or_404(campaign_id)
    data = campaign.to_dict(include_invite=True)
    data['members'] = [m.to_dict() for m in campaign.members]
    data['recentSessions'] = [s.to_dict(include_entries=False) for s in
                              sorted(campaign.game_sessions, key=lambda s: s.id, reverse=True)[:10]]
    return api_success(data)


@admin_bp.route('/campaigns/<int:campaign_id>', methods=['DELETE'])
@authenticated
@admin_required
def delete_campaign(identity, campaign_id):
    campaign = _get_campaign_or_404(campaign_id)
    name = campaign.name
    db.session.delete(campaign)
    audit(identity, 'campaign.delete', 'Campaign', campaign_id, {'name': name})
    db.session.commit()

    logger.info('Admin %s deleted campaign %s', identity.user_id, campaign_id)
    return api_success({'deleted': True})


# ── Reports (moderation queue) ───────────────────────────────────────────────

# What a report can point at, by targetType
REPORT_TARGETS = {
    'User': User,
    'Campaign': Campaign,
    'ChatMessage': ChatMessage,
}


def _get_report_or_404(report_id):
    report = db.session.get(Report, report_id)
    if report is None:
        raise NotFoundError('Report not found')
    return report


@admin_bp.route('/reports', methods=['POST'])
@limiter.limit("10 per minute")
@authenticated
def create_report(identity):
    """Any signed-in user can flag a user, campaign or message for staff."""
    data = validate_body(ReportCreate)
    model = REPORT_TARGETS[data.target_type]
    if db.session.get(model, data.target_id) is None:
        raise ValidationError(f'{data.target_type} {data.target_id} not found')

    report = Report(
        reporter_id=identity.user_id,
        target_type=data.target_type,
        target_id=str(data.target_id),
        reason=data.reason.strip(),
        description=data.description,
    )
    db.session.add(report)
    db.session.commit()

    logger.info('User %s reported %s %s', identity.user_id, data.target_type, data.target_id)
    return created(report.to_dict())


@admin_bp.route('/reports')
@authenticated
@admin_required
def list_reports(identity):
    page, limit, offset = page_args(default_limit=25)
    query = Report.query

    status = request.args.get('status', '').strip()
    if status:
        query = query.filter(Report.status == status)
    target_type = request.args.get('targetType', '').strip()
    if target_type:
        query = query.filter(Report.target_type == target_type)

    total = query.count()
    reports = query.order_by(Report.created_at.desc(), Report.id.desc()) \
        .offset(offset).limit(limit).all()
    return api_success({
        'reports': [r.to_dict() for r in reports],
        'pagination': pagination(page, limit, total),
    })


@admin_bp.route('/reports/<int:report_id>', methods=['PATCH'])
@authenticated
@admin_required
def resolve_report(identity, report_id):
    report = _get_report_or_404(report_id)
    data = validate_body(ReportResolve)

    report.status = data.status
    report.resolution = data.resolution
    report.resolved_by_id = identity.user_id

    audit(identity, f'report.{data.status.lower()}', 'Report', report.id,
          {'reason': report.reason, 'resolution': data.resolution})
    db.session.commit()
    return api_success(report.to_dict())


@admin_bp.route('/reports/<int:report_id>', methods=['DELETE'])
@authenticated
@admin_required
def delete_report(identity, report_id):
    report = _get_report_or_404(report_id)
    db.session.delete(report)
    audit(identity, 'report.delete', 'Report', report_id)
    db.session.commit()
    return api_success({'deleted': True})


# ── Audit log ────────────────────────────────────────────────────────────────

@admin_bp.route('/audit-log')
@authenticated
@admin_required
def audit_log(identity):
    page, limit, offset = page_args(default_limit=50)
    query = AuditLog.query

    action = request.args.get('action', '').strip()
    if action:
        query = query.filter(AuditLog.action == action)
    user_id = int_arg('userId')
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    target_type = request.args.get('targetType', '').strip()
    if target_type:
        query = query.filter(AuditLog.target_type == target_type)

    total = query.count()
    rows = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()) \
        .offset(offset).limit(limit).all()
    return api_success({
        'logs': [row.to_dict() for row in rows],
        'pagination': pagination(page, limit, total),
    })


# ── Settings ─────────────────────────────────────────────────────────────────

@admin_bp.route('/settings')
@authenticated
@admin_required
def get_settings(identity):
    return api_success(_settings_dict())


@admin_bp.route('/settings', methods=['PATCH'])
@authenticated
@admin_required
def update_settings(identity):
    data = validate_body(SettingsUpdate)
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

    # Settings are stored as strings, like the rest of the key-value table
    if 'allow_signup' in changes:
        AppSetting.set('allow_signup', 'true' if changes['allow_signup'] else 'false')
    if 'maintenance_message' in changes:
        AppSetting.set('maintenance_message', changes['maintenance_message'])

    audit(identity, 'settings.update', 'AppSetting', None, changes)
    db.session.commit()
    return api_success(_settings_dict())
