from datetime import datetime

from flask import Blueprint, current_app, request
from sqlalchemy import and_, or_

from taverna import db
from taverna.api_utils import (
    LIKE_ESCAPE, api_success, created, int_arg, like_pattern, sanitize, validate_body,
)
from taverna.errors import ForbiddenError, NotFoundError, ValidationError
from taverna.guards import authenticated, require_campaign_member
from taverna.models import CHAT_CHANNELS, CampaignMember, ChatMessage
from taverna.schemas import MessageCreate, MessageEdit, ReactionToggle

messages_bp = Blueprint('messages', __name__, url_prefix='/api')


def _load_message(message_id, identity):
    """Returns (message, is_dm) after checking campaign membership."""
    message = db.session.get(ChatMessage, message_id)
    if message is None:
        raise NotFoundError('Message not found')
    _campaign, is_dm, _role = require_campaign_member(message.campaign_id, identity)
    if _is_whisper(message) and identity.user_id not in (message.sender_id, message.whisper_to):
        # Someone else's whisper doesn't exist as far as this user is concerned
        raise NotFoundError('Message not found')
    return message, is_dm


def _is_whisper(message):
    return (message.whisper_to is not None or message.type == 'WHISPER'
            or message.channel == 'WHISPERS')


def _visible_to(user_id):
    """Filter: public messages, plus whispers this user sent or received."""
    public = and_(ChatMessage.whisper_to.is_(None),
                  ChatMessage.type != 'WHISPER',
                  ChatMessage.channel != 'WHISPERS')
    return or_(public, ChatMessage.sender_id == user_id, ChatMessage.whisper_to == user_id)


def _is_in_campaign(campaign, user_id):
    if campaign.dm_id == user_id:
        return True
    return CampaignMember.query.filter_by(campaign_id=campaign.id, user_id=user_id).first() is not None


# ── Read & send ──────────────────────────────────────────────────────────────

@messages_bp.route('/campaigns/<int:campaign_id>/messages')
@authenticated
def list_messages(identity, campaign_id):
    require_campaign_member(campaign_id, identity)

    limit = int_arg('limit', current_app.config['CHAT_PAGE_SIZE'],
                    minimum=1, maximum=current_app.config['CHAT_PAGE_MAX'])
    cursor = int_arg('cursor')
    channel = request.args.get('channel')
    search = request.args.get('search', '').strip()

    query = ChatMessage.query.filter(ChatMessage.campaign_id == campaign_id,
                                     _visible_to(identity.user_id))
    if channel:
        if channel not in CHAT_CHANNELS:
            raise ValidationError(f'Unknown channel: {channel}')
        query = query.filter(ChatMessage.channel == channel)
    if search:
        pattern = like_pattern(search)
        query = query.filter(or_(ChatMessage.content.ilike(pattern, escape=LIKE_ESCAPE),
                                 ChatMessage.sender_name.ilike(pattern, escape=LIKE_ESCAPE),
                                 ChatMessage.character_name.ilike(pattern, escape=LIKE_ESCAPE)))
    # Cursor is the id of the oldest message the client already has
    if cursor is not None:
        query = query.filter(ChatMessage.id < cursor)

    # Fetch one extra row to find out whether there is an older page
    rows = query.order_by(ChatMessage.id.desc()).limit(limit + 1).all()
    has_more = len(rows) > limit
    rows = rows[:limit]
    rows.reverse()   # oldest first, the way a chat window reads

    return api_success({
        'messages': [m.to_dict() for m in rows],
        'nextCursor': rows[0].id if has_more and rows else None,
        'hasMore': has_more,
    })


@messages_bp.route('/campaigns/<int:campaign_id>/messages', methods=['POST'])
@authenticated
def send_message(identity, campaign_id):
    campaign, _is_dm, _role = require_campaign_member(campaign_id, identity)
    data = validate_body(MessageCreate)

    if data.type == 'WHISPER' and data.whisper_to is None:
        raise ValidationError('A whisper needs a recipient', {'whisperTo': ['Field required']})
    if data.whisper_to is not None and not _is_in_campaign(campaign, data.whisper_to):
        raise ValidationError('Whisper recipient is not in this campaign')

    reply_to_id = data.reply_to_id
    if reply_to_id is not None:
        parent = db.session.get(ChatMessage, reply_to_id)
        if parent is None or parent.campaign_id != campaign.id:
            raise ValidationError('Reply target not found in this campaign')

    message = ChatMessage(
        campaign_id=campaign.id,
        sender_id=identity.user_id,
        sender_name=identity.display_name,
        type=data.type,
        channel=data.channel,
        content=sanitize(data.content),
        character_name=data.character_name,
        whisper_to=data.whisper_to,
        whisper_to_name=data.whisper_to_name,
        dice_result=data.dice_result,
        combat_result=data.combat_result,
        reply_to_id=reply_to_id,
        reply_to_preview=data.reply_to_preview,
        reply_to_sender=data.reply_to_sender,
        mentions=data.mentions,
        mention_everyone=data.mention_everyone,
        reactions=[],
    )
    db.session.add(message)
    db.session.commit()
    return created(message.to_dict())


# ── Single message ───────────────────────────────────────────────────────────

@messages_bp.route('/messages/<int:message_id>', methods=['PATCH'])
@authenticated
def edit_message(identity, message_id):
    message, _is_dm = _load_message(message_id, identity)
    if message.sender_id != identity.user_id:
        raise ForbiddenError('You can only edit your own messages')
    data = validate_body(MessageEdit)

    message.content = sanitize(data.content)
    message.edited_at = datetime.utcnow()
    db.session.commit()
    return api_success(message.to_dict())


@messages_bp.route('/messages/<int:message_id>', methods=['DELETE'])
@authenticated
def delete_message(identity, message_id):
    message, is_dm = _load_message(message_id, identity)
    if message.sender_id != identity.user_id and not is_dm:
        raise ForbiddenError('You can only delete your own messages')
    db.session.delete(message)
    db.session.commit()
    return api_success({'deleted': True})


@messages_bp.route('/messages/<int:message_id>/pin', methods=['POST'])
@authenticated
def toggle_pin(identity, message_id):
    message, is_dm = _load_message(message_id, identity)
    if not is_dm:
        raise ForbiddenError('Only the DM can pin messages')
    message.pinned = not message.pinned
    db.session.commit()
    return api_success(message.to_dict())


@messages_bp.route('/messages/<int:message_id>/reactions', methods=['POST'])
@authenticated
def toggle_reaction(identity, message_id):
    message, _is_dm = _load_message(message_id, identity)
    data = validate_body(ReactionToggle)

    # Rebuild the list so the JSON column sees a new object
    reactions = []
    found = False
    for reaction in message.reactions or []:
        user_ids = list(reaction.get('userIds', []))
        if reaction.get('emoji') == data.emoji:
            found = True
            if identity.user_id in user_ids:
                user_ids.remove(identity.user_id)
            else:
                user_ids.append(identity.user_id)
        # A reaction nobody is using any more disappears
        if user_ids:
            reactions.append({'emoji': reaction['emoji'], 'userIds': user_ids})
    if not found:
        reactions.append({'emoji': data.emoji, 'userIds': [identity.user_id]})

    message.reactions = reactions
    db.session.commit()
    return api_success(message.to_dict())
