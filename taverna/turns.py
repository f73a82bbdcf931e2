"""The session/turn engine: status transitions, turn advancement, and the
combat-log rows that HP and condition changes produce.

Nothing in here commits. Route handlers call these helpers, then commit
once, so a request's log rows and state changes land together or not at all.
"""

import logging
from datetime import datetime

from sqlalchemy import or_

from taverna import db
from taverna.errors import ConflictError
from taverna.models import ChatMessage, CombatLogEntry

logger = logging.getLogger(__name__)


# ── Session lifecycle ────────────────────────────────────────────────────────

def transition_session(session, new_status):
    """Move a session to new_status (LOBBY -> LIVE <-> PAUSED -> ENDED).

    ENDED is terminal. Everything else is allowed, including LOBBY -> ENDED
    for a session that never got played.
    """
    if session.status == 'ENDED' and new_status != 'ENDED':
        raise ConflictError('This session has ended and cannot be reopened')

    old_status = session.status
    session.status = new_status

    # Only the first time the session goes live
    if new_status == 'LIVE' and session.started_at is None:
        session.started_at = datetime.utcnow()
    if new_status == 'ENDED' and session.ended_at is None:
        session.ended_at = datetime.utcnow()

    if old_status != new_status:
        logger.info('Session %s: %s -> %s', session.id, old_status, new_status)
    return session


# ── Turn order ───────────────────────────────────────────────────────────────

def advance_turn(session):
    """Activate the next combatant in initiative order.

    Rounds: wrapping from the last entry back to the first adds one round.
    The very first activation of a fresh session (no active entry, round 0)
    sets the round to 1 instead. No log row is written.
    """
    entries = list(session.initiative_entries)
    if not entries:
        return session

    active_index = next((i for i, e in enumerate(entries) if e.is_active), -1)

    for entry in entries:
        entry.is_active = False

    next_index = (active_index + 1) % len(entries)
    entries[next_index].is_active = True

    if next_index == 0 and active_index >= 0:
        session.current_round += 1
    if active_index == -1 and session.current_round == 0:
        session.current_round = 1

    logger.info('Session %s: round %s, %s is up',
                session.id, session.current_round, entries[next_index].name)
    return session


# ── Combat log ───────────────────────────────────────────────────────────────

def append_log(session, turn, action, result, details=None, actor_id=None):
    """Add a row to the session's combat log at the current round."""
    row = CombatLogEntry(
        session_id=session.id,
        round=session.current_round,
        turn=turn,
        action=action,
        result=result,
        details=details,
        actor_id=actor_id,
    )
    db.session.add(row)
    return row


def post_combat_message(session, identity, content, msg_type='COMBAT',
                        character_name=None, dice_result=None, combat_result=None):
    """Post a campaign-wide chat message on the COMBAT channel."""
    message = ChatMessage(
        campaign_id=session.campaign_id,
        sender_id=identity.user_id,
        sender_name=identity.display_name,
        type=msg_type,
        channel='COMBAT',
        content=content,
        character_name=character_name,
        dice_result=dice_result,
        combat_result=combat_result,
    )
    db.session.add(message)
    return message


def apply_entry_update(session, entry, changes, identity):
    """Apply a partial update to an initiative entry and log what changed.

    `changes` is the dict from InitiativeUpdate.model_dump(exclude_unset=True).
    Returns the list of CombatLogEntry rows that were added.
    """
    logs = []

    if 'hp' in changes:
        new_hp = changes['hp']
        old_hp = entry.hp
        # A monster added without HP has nothing to compare against
        if old_hp and new_hp is not None:
            old_current = old_hp['current']
            new_current = new_hp['current']
            delta = new_current - old_current
            if delta != 0:
                if delta < 0:
                    text = f'{entry.name} takes {-delta} damage ({new_current}/{new_hp["max"]} HP)'
                else:
                    text = f'{entry.name} heals {delta} HP ({new_current}/{new_hp["max"]} HP)'
                logs.append(append_log(session, entry.name, 'DAMAGE' if delta < 0 else 'HEALING', text, {
                    'oldHP': old_current,
                    'newHP': new_current,
                    'maxHP': new_hp['max'],
                    'delta': delta,
                    'updatedBy': identity.user_id,
                }, actor_id=identity.user_id))

            if old_current > 0 and new_current <= 0:
                logs.append(append_log(session, entry.name, 'DEATH',
                                       f'{entry.name} falls unconscious!',
                                       actor_id=identity.user_id))
                post_combat_message(session, identity, f'💀 {entry.name} falls unconscious!')
                logger.info('Session %s: %s dropped to 0 HP', session.id, entry.name)
        # New dict so the JSON column sees the change
        entry.hp = dict(new_hp) if new_hp is not None else None

    if 'conditions' in changes and changes['conditions'] is not None:
        old_conditions = list(entry.conditions or [])
        new_conditions = list(changes['conditions'])
        for condition in new_conditions:
            if condition not in old_conditions:
                logs.append(append_log(session, entry.name, 'CONDITION_ADD',
                                       f'{entry.name} gains condition: {condition}',
                                       actor_id=identity.user_id))
        for condition in old_conditions:
            if condition not in new_conditions:
                logs.append(append_log(session, entry.name, 'CONDITION_REMOVE',
                                       f'{entry.name} loses condition: {condition}',
                                       actor_id=identity.user_id))
        entry.conditions = new_conditions

    for field in ('armor_class', 'concentrating_on', 'initiative', 'is_active'):
        if field in changes:
            # initiative / is_active are NOT NULL columns; an explicit null means "leave it"
            if changes[field] is None and field in ('initiative', 'is_active'):
                continue
            setattr(entry, field, changes[field])

    return logs


def build_recap(session, rows):
    """Group log rows (oldest first) by round, with per-action counts."""
    rounds = {}
    counts = {}
    for row in rows:
        rounds.setdefault(row.round, []).append(row.to_dict())
        counts[row.action] = counts.get(row.action, 0) + 1
    return {
        'sessionId': session.id,
        'sessionNumber': session.session_number,
        'status': session.status,
        'currentRound': session.current_round,
        'rounds': [{'round': number, 'entries': entries}
                   for number, entries in sorted(rounds.items())],
        'actionCounts': counts,
        'totalEntries': len(rows),
    }


def visible_log(session, identity, is_dm):
    """Query for the log rows this viewer may read. Secret rolls are only
    visible to the DM and the player who rolled them."""
    query = session.combat_log
    if not is_dm:
        query = query.filter(or_(CombatLogEntry.action != 'SECRET_ROLL',
                                 CombatLogEntry.actor_id == identity.user_id))
    return query
