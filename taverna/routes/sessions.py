import logging
from datetime import datetime

from flask import Blueprint

from taverna import db
from taverna.api_utils import api_success, created, validate_body
from taverna.errors import NotFoundError, ValidationError
from taverna.guards import authenticated, require_campaign_member, require_dm, require_session_member
from taverna.models import Character, CombatLogEntry, GameSession, InitiativeEntry
from taverna.schemas import InitiativeCreate, InitiativeUpdate, SessionCreate, SessionStatusUpdate
from taverna.turns import advance_turn, append_log, apply_entry_update, transition_session, visible_log

logger = logging.getLogger(__name__)

sessions_bp = Blueprint('sessions', __name__, url_prefix='/api')

# How many log rows the session detail view includes
RECENT_LOG_ROWS = 50


def _load_entry(session, entry_id):
    entry = db.session.get(InitiativeEntry, entry_id)
    if entry is None or entry.session_id != session.id:
        raise NotFoundError('Initiative entry not found')
    return entry


# ── Sessions ─────────────────────────────────────────────────────────────────

@sessions_bp.route('/campaigns/<int:campaign_id>/sessions')
@authenticated
def list_sessions(identity, campaign_id):
    require_campaign_member(campaign_id, identity)
    sessions = GameSession.query.filter_by(campaign_id=campaign_id) \
        .order_by(GameSession.created_at.desc(), GameSession.id.desc()).all()

    results = []
    for s in sessions:
        data = s.to_dict(include_entries=False)
        data['_count'] = {
            'initiativeEntries': len(s.initiative_entries),
            'combatLog': s.combat_log.count(),
        }
        results.append(data)
    return api_success(results)


@sessions_bp.route('/campaigns/<int:campaign_id>/sessions', methods=['POST'])
@authenticated
def create_session(identity, campaign_id):
    campaign = require_dm(campaign_id, identity, 'Only the DM can start a session')
    data = validate_body(SessionCreate)

    session = GameSession(
        campaign_id=campaign.id,
        dm_id=identity.user_id,
        session_number=data.session_number,
        connected_players=[identity.user_id],
    )
    db.session.add(session)

    campaign.session_count = max(campaign.session_count or 0, data.session_number)
    campaign.last_played_at = datetime.utcnow()
    db.session.commit()

    logger.info('Session %s (#%s) created in campaign %s',
                session.id, session.session_number, campaign.id)
    return created(session.to_dict())


@sessions_bp.route('/sessions/<int:session_id>')
@authenticated
def get_session(identity, session_id):
    session, is_dm = require_session_member(session_id, identity)
    recent = visible_log(session, identity, is_dm) \
        .order_by(CombatLogEntry.created_at.desc(), CombatLogEntry.id.desc()) \
        .limit(RECENT_LOG_ROWS).all()

    data = session.to_dict()
    data['combatLog'] = [row.to_dict() for row in recent]
    data['isDM'] = is_dm
    return api_success(data)


@sessions_bp.route('/sessions/<int:session_id>', methods=['PATCH'])
@authenticated
def update_session(identity, session_id):
    session, _is_dm = require_session_member(session_id, identity, dm_only=True)
    data = validate_body(SessionStatusUpdate)

    transition_session(session, data.status)
    db.session.commit()
    return api_success(session.to_dict())


@sessions_bp.route('/sessions/<int:session_id>', methods=['DELETE'])
@authenticated
def delete_session(identity, session_id):
    session, _is_dm = require_session_member(session_id, identity, dm_only=True)
    db.session.delete(session)
    db.session.commit()
    logger.info('Session %s deleted', session_id)
    return api_success({'deleted': True})


# ── Initiative ───────────────────────────────────────────────────────────────

@sessions_bp.route('/sessions/<int:session_id>/initiative')
@authenticated
def list_initiative(identity, session_id):
    session, _is_dm = require_session_member(session_id, identity)
    return api_success([e.to_dict() for e in session.initiative_entries])


@sessions_bp.route('/sessions/<int:session_id>/initiative', methods=['POST'])
@authenticated
def add_initiative(identity, session_id):
    session, _is_dm = require_session_member(session_id, identity, dm_only=True)
    data = validate_body(InitiativeCreate)

    if data.character_id is not None:
        character = db.session.get(Character, data.character_id)
        if character is None or character.campaign_id != session.campaign_id:
            raise ValidationError('Character does not belong to this campaign')

    entry = InitiativeEntry(
        session_id=session.id,
        name=data.name.strip(),
        initiative=data.initiative,
        is_npc=data.is_npc,
        hp=data.hp.model_dump() if data.hp else None,
        armor_class=data.armor_class,
        character_id=data.character_id,
        conditions=[],
        is_active=data.is_active,
    )
    db.session.add(entry)
    db.session.commit()
    return created(entry.to_dict())


@sessions_bp.route('/sessions/<int:session_id>/initiative/<int:entry_id>', methods=['PATCH'])
@authenticated
def update_initiative(identity, session_id, entry_id):
    # Players may update their own HP and conditions too, so members, not just the DM
    session, _is_dm = require_session_member(session_id, identity)
    entry = _load_entry(session, entry_id)
    data = validate_body(InitiativeUpdate)

    apply_entry_update(session, entry, data.model_dump(exclude_unset=True), identity)
    db.session.commit()
    return api_success(entry.to_dict())


@sessions_bp.route('/sessions/<int:session_id>/initiative/<int:entry_id>', methods=['DELETE'])
@authenticated
def remove_initiative(identity, session_id, entry_id):
    session, _is_dm = require_session_member(session_id, identity, dm_only=True)
    entry = _load_entry(session, entry_id)

    append_log(session, entry.name, 'REMOVED', f'{entry.name} removed from initiative',
               actor_id=identity.user_id)
    db.session.delete(entry)
    db.session.commit()
    return api_success({'deleted': True})


@sessions_bp.route('/sessions/<int:session_id>/next-turn', methods=['POST'])
@authenticated
def next_turn(identity, session_id):
    session, _is_dm = require_session_member(session_id, identity, dm_only=True)
    advance_turn(session)
    db.session.commit()
    return api_success(session.to_dict())
