import logging

from flask import Blueprint, current_app

from taverna import db, limiter
from taverna.api_utils import api_success, created, int_arg, sanitize, validate_body
from taverna.dice import roll
from taverna.guards import authenticated, require_session_member
from taverna.models import CombatLogEntry
from taverna.schemas import CombatLogCreate, SessionRoll
from taverna.turns import append_log, build_recap, post_combat_message, visible_log

logger = logging.getLogger(__name__)

combat_bp = Blueprint('combat', __name__, url_prefix='/api/sessions')

# Manual log rows of these kinds are announced in the COMBAT chat channel too
ANNOUNCED_ACTIONS = {
    'DAMAGE': '⚔️',
    'HEALING': '💚',
    'DEATH': '💀',
    'STABILIZE': '✨',
}


# ── Combat log ───────────────────────────────────────────────────────────────

@combat_bp.route('/<int:session_id>/combat-log')
@authenticated
def get_combat_log(identity, session_id):
    session, is_dm = require_session_member(session_id, identity)

    limit = int_arg('limit', current_app.config['COMBAT_LOG_LIMIT'],
                    minimum=1, maximum=current_app.config['COMBAT_LOG_MAX'])
    round_number = int_arg('round')

    query = visible_log(session, identity, is_dm)
    if round_number is not None:
        query = query.filter(CombatLogEntry.round == round_number)
    logs = query.order_by(CombatLogEntry.created_at.desc(), CombatLogEntry.id.desc()) \
        .limit(limit).all()

    return api_success({
        'logs': [row.to_dict() for row in logs],
        'sessionId': session.id,
        'currentRound': session.current_round,
    })


@combat_bp.route('/<int:session_id>/combat-log', methods=['POST'])
@authenticated
def add_combat_log(identity, session_id):
    session, _is_dm = require_session_member(session_id, identity)
    data = validate_body(CombatLogCreate)

    entry = append_log(session, data.turn, data.action, data.result,
                       details=data.details, actor_id=identity.user_id)

    if data.action in ANNOUNCED_ACTIONS:
        combat_result = {'action': data.action, 'turn': data.turn, 'round': session.current_round}
        combat_result.update(data.details or {})
        post_combat_message(
            session, identity,
            f'{ANNOUNCED_ACTIONS[data.action]} {sanitize(data.result)}',
            combat_result=combat_result,
        )

    db.session.commit()
    return created(entry.to_dict())


@combat_bp.route('/<int:session_id>/recap')
@authenticated
def session_recap(identity, session_id):
    """Everything that happened, oldest first, grouped by round."""
    session, is_dm = require_session_member(session_id, identity)
    rows = visible_log(session, identity, is_dm) \
        .order_by(CombatLogEntry.created_at, CombatLogEntry.id).all()
    return api_success(build_recap(session, rows))


# ── Dice rolled inside a session ─────────────────────────────────────────────

@combat_bp.route('/<int:session_id>/roll', methods=['POST'])
@limiter.limit("60 per minute")
@authenticated
def session_roll(identity, session_id):
    session, _is_dm = require_session_member(session_id, identity)
    data = validate_body(SessionRoll)
    result = roll(data.formula)

    roller = data.character_name or identity.display_name
    action = 'SECRET_ROLL' if data.is_private else 'DICE_ROLL'
    label = f' ({data.label})' if data.label else ''
    summary = f'{roller} rolled {data.formula}{label}: {result["total"]}'

    append_log(session, roller, action, summary, details={
        'formula': data.formula,
        'label': data.label,
        'rolls': result['rolls'],
        'modifier': result['modifier'],
        'total': result['total'],
        'isCritical': result['isCritical'],
        'isFumble': result['isFumble'],
        'rolledBy': identity.display_name,
        'userId': identity.user_id,
        'characterName': data.character_name,
        'isPrivate': data.is_private,
    }, actor_id=identity.user_id)

    # Secret rolls stay in the log; everyone else sees the roll in chat
    if not data.is_private:
        rolls = ', '.join(str(r) for r in result['rolls'])
        post_combat_message(
            session, identity,
            sanitize(f'🎲 {roller} rolled {data.formula}{label}: [{rolls}] = **{result["total"]}**'),
            msg_type='DICE',
            character_name=data.character_name,
            dice_result={
                'formula': data.formula,
                'rolls': result['rolls'],
                'total': result['total'],
                'modifier': result['modifier'],
            },
        )

    db.session.commit()

    response = {
        'formula': data.formula,
        'label': data.label,
        'characterName': data.character_name,
    }
    response.update(result)
    response.update({
        'sessionId': session.id,
        'round': session.current_round,
        'logged': True,
    })
    return api_success(response)
