import logging

from flask import Blueprint
from sqlalchemy import or_, select

from taverna import db
from taverna.api_utils import api_success, created, validate_body
from taverna.errors import ConflictError, ForbiddenError, NotFoundError
from taverna.guards import authenticated, require_campaign_member, require_dm
from taverna.models import Campaign, CampaignMember, Character, new_invite_code
from taverna.schemas import CampaignCreate, CampaignUpdate, JoinCampaign

logger = logging.getLogger(__name__)

campaigns_bp = Blueprint('campaigns', __name__, url_prefix='/api/campaigns')


def _fresh_invite_code():
    """A new invite code that no other campaign is using."""
    code = new_invite_code()
    while Campaign.query.filter_by(invite_code=code).first():
        code = new_invite_code()
    return code


def campaign_detail(campaign, is_dm, role):
    data = campaign.to_dict(include_invite=True)
    data['members'] = [m.to_dict() for m in campaign.members]
    data['isDM'] = is_dm
    data['myRole'] = role
    return data


# ── List & create ────────────────────────────────────────────────────────────

@campaigns_bp.route('')
@authenticated
def list_campaigns(identity):
    # Campaigns I run, plus campaigns I've joined
    member_of = select(CampaignMember.campaign_id).where(CampaignMember.user_id == identity.user_id)
    campaigns = Campaign.query.filter(
        or_(Campaign.dm_id == identity.user_id, Campaign.id.in_(member_of))
    ).order_by(Campaign.updated_at.desc()).all()

    results = []
    for campaign in campaigns:
        data = campaign.to_dict(include_invite=True)
        data['isDM'] = campaign.dm_id == identity.user_id
        results.append(data)
    return api_success(results)


@campaigns_bp.route('', methods=['POST'])
@authenticated
def create_campaign(identity):
    data = validate_body(CampaignCreate)

    campaign = Campaign(
        dm_id=identity.user_id,
        name=data.name.strip(),
        description=data.description,
        setting=data.setting,
        rule_set=data.rule_set,
        max_players=data.max_players,
        image_url=data.image_url,
        invite_code=_fresh_invite_code(),
    )
    db.session.add(campaign)
    db.session.flush()   # get campaign.id before adding the member row

    # The creator is the DM, and also a member (role DM)
    db.session.add(CampaignMember(user_id=identity.user_id, campaign_id=campaign.id, role='DM'))
    db.session.commit()

    logger.info('Campaign %s created by user %s', campaign.id, identity.user_id)
    return created(campaign_detail(campaign, True, 'DM'))


# ── Join by invite code ──────────────────────────────────────────────────────

@campaigns_bp.route('/join', methods=['POST'])
@authenticated
def join_campaign(identity):
    data = validate_body(JoinCampaign)
    campaign = Campaign.query.filter_by(invite_code=data.invite_code.strip()).first()
    if campaign is None:
        raise NotFoundError('Invalid invite code')

    existing = CampaignMember.query.filter_by(
        user_id=identity.user_id, campaign_id=campaign.id).first()
    if existing or campaign.dm_id == identity.user_id:
        raise ConflictError('You are already a member of this campaign')

    # The DM's own member row counts toward the limit
    if len(campaign.members) >= campaign.max_players:
        raise ConflictError('Campaign is full')

    db.session.add(CampaignMember(user_id=identity.user_id, campaign_id=campaign.id, role='PLAYER'))
    db.session.commit()

    logger.info('User %s joined campaign %s', identity.user_id, campaign.id)
    return api_success({'campaign': {'id': campaign.id, 'name': campaign.name}})


# ── Single campaign ──────────────────────────────────────────────────────────

@campaigns_bp.route('/<int:campaign_id>')
@authenticated
def get_campaign(identity, campaign_id):
    campaign, is_dm, role = require_campaign_member(campaign_id, identity)
    return api_success(campaign_detail(campaign, is_dm, role))


@campaigns_bp.route('/<int:campaign_id>', methods=['PATCH'])
@authenticated
def update_campaign(identity, campaign_id):
    campaign = require_dm(campaign_id, identity, 'Only the DM can edit this campaign')
    data = validate_body(CampaignUpdate)

    for field, value in data.model_dump(exclude_unset=True).items():
        # name, status and max_players are NOT NULL; ignore an explicit null
        if value is None and field in ('name', 'status', 'max_players'):
            continue
        setattr(campaign, field, value)

    db.session.commit()
    return api_success(campaign_detail(campaign, True, 'DM'))


@campaigns_bp.route('/<int:campaign_id>', methods=['DELETE'])
@authenticated
def delete_campaign(identity, campaign_id):
    campaign = require_dm(campaign_id, identity, 'Only the DM can delete this campaign')
    db.session.delete(campaign)
    db.session.commit()
    logger.info('Campaign %s deleted by user %s', campaign_id, identity.user_id)
    return api_success({'deleted': True})


@campaigns_bp.route('/<int:campaign_id>/leave', methods=['POST'])
@authenticated
def leave_campaign(identity, campaign_id):
    campaign, is_dm, _role = require_campaign_member(campaign_id, identity)
    if is_dm:
        raise ForbiddenError('The DM cannot leave their own campaign. Delete it instead.')

    # The leaver's characters go with them
    Character.query.filter_by(campaign_id=campaign.id, player_id=identity.user_id).delete()
    CampaignMember.query.filter_by(campaign_id=campaign.id, user_id=identity.user_id).delete()
    db.session.commit()

    logger.info('User %s left campaign %s', identity.user_id, campaign.id)
    return api_success({'left': True})


@campaigns_bp.route('/<int:campaign_id>/invite-code', methods=['POST'])
@authenticated
def regenerate_invite_code(identity, campaign_id):
    campaign = require_dm(campaign_id, identity, 'Only the DM can change the invite code')
    campaign.invite_code = _fresh_invite_code()
    db.session.commit()
    return api_success({'inviteCode': campaign.invite_code})
