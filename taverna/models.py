import uuid
from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from taverna import db

# Allowed values for string "enum" columns. schemas.py builds its Literal
# types from these tuples, so request validation and storage share one list.
PLATFORM_ROLES = ('USER', 'MODERATOR', 'ADMIN')
CAMPAIGN_STATUSES = ('ACTIVE', 'PAUSED', 'COMPLETED', 'ARCHIVED')
SESSION_STATUSES = ('LOBBY', 'LIVE', 'PAUSED', 'ENDED')
# Combat log kinds a client may write by hand. DICE_ROLL, SECRET_ROLL and
# REMOVED rows are only ever written by the server.
MANUAL_COMBAT_ACTIONS = (
    'DAMAGE', 'HEALING', 'CONDITION_ADD', 'CONDITION_REMOVE', 'DEATH',
    'STABILIZE', 'ACTION', 'SPELL', 'MOVEMENT', 'NARRATION',
)
MESSAGE_TYPES = ('TEXT', 'DICE', 'WHISPER', 'SYSTEM', 'NARRATION', 'EMOTE', 'OOC', 'COMBAT')
CHAT_CHANNELS = ('GENERAL', 'COMBAT', 'LORE', 'OFF_TOPIC', 'WHISPERS')
QUEST_STATUSES = ('HIDDEN', 'AVAILABLE', 'ACTIVE', 'COMPLETED', 'FAILED')
ENCOUNTER_DIFFICULTIES = ('easy', 'medium', 'hard', 'deadly')
TIMELINE_EVENT_TYPES = ('story', 'combat', 'discovery', 'milestone', 'death', 'custom')
REPORT_TARGET_TYPES = ('User', 'Campaign', 'ChatMessage')
REPORT_STATUSES = ('PENDING', 'REVIEWING', 'RESOLVED', 'DISMISSED')


def _iso(value):
    return value.isoformat() + 'Z' if value else None


def new_invite_code():
    return uuid.uuid4().hex[:10]


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(256), unique=True, nullable=False)
    display_name = db.Column(db.String(50), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    image = db.Column(db.String(500))
    role = db.Column(db.String(20), default='USER', nullable=False)   # USER / MODERATOR / ADMIN
    is_banned = db.Column(db.Boolean, default=False, nullable=False)
    ban_reason = db.Column(db.String(500))
    banned_at = db.Column(db.DateTime)
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Deleting a user removes everything they own outright. Messages and
    # audit rows they authored are kept with the author cleared.
    owned_campaigns = db.relationship('Campaign', backref='dm', lazy=True,
                                      cascade='all, delete-orphan')
    memberships = db.relationship('CampaignMember', backref='user', lazy=True,
                                  cascade='all, delete-orphan')
    characters = db.relationship('Character', backref='player', lazy=True,
                                 cascade='all, delete-orphan')
    quest_votes = db.relationship('QuestVote', lazy=True, cascade='all, delete-orphan')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password, method='pbkdf2:sha256')

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self, private=False):
        data = {
            'id': self.id,
            'displayName': self.display_name,
            'image': self.image,
        }
        if private:
            data.update({
                'email': self.email,
                'role': self.role,
                'isBanned': self.is_banned,
                'banReason': self.ban_reason,
                'bannedAt': _iso(self.banned_at),
                'createdAt': _iso(self.created_at),
                'lastLoginAt': _iso(self.last_login_at),
            })
        return data

    def __repr__(self):
        return f'<User {self.email}>'


class Campaign(db.Model):
    __tablename__ = 'campaigns'

    id = db.Column(db.Integer, primary_key=True)
    dm_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, default='')
    setting = db.Column(db.String(500), default='')
    rule_set = db.Column(db.String(100), default='D&D 5e')
    status = db.Column(db.String(20), default='ACTIVE', nullable=False)
    max_players = db.Column(db.Integer, default=6, nullable=False)
    invite_code = db.Column(db.String(32), unique=True, nullable=False, default=new_invite_code)
    image_url = db.Column(db.String(500))
    session_count = db.Column(db.Integer, default=0)
    last_played_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Everything a campaign owns goes with it
    members = db.relationship('CampaignMember', backref='campaign', lazy=True,
                              cascade='all, delete-orphan', order_by='CampaignMember.joined_at')
    characters = db.relationship('Character', backref='campaign', lazy=True,
                                 cascade='all, delete-orphan')
    game_sessions = db.relationship('GameSession', backref='campaign', lazy=True,
                                    cascade='all, delete-orphan')
    messages = db.relationship('ChatMessage', backref='campaign', lazy=True,
                               cascade='all, delete-orphan')
    scenes = db.relationship('MapScene', backref='campaign', lazy=True,
                             cascade='all, delete-orphan')
    rollable_tables = db.relationship('RollableTable', backref='campaign', lazy=True,
                                      cascade='all, delete-orphan')
    quests = db.relationship('Quest', backref='campaign', lazy=True,
                             cascade='all, delete-orphan')
    lore_entries = db.relationship('LoreEntry', backref='campaign', lazy=True,
                                   cascade='all, delete-orphan')
    npcs = db.relationship('NPC', backref='campaign', lazy=True,
                           cascade='all, delete-orphan')
    encounter_templates = db.relationship('EncounterTemplate', backref='campaign', lazy=True,
                                          cascade='all, delete-orphan')
    timeline_events = db.relationship('TimelineEvent', backref='campaign', lazy=True,
                                      cascade='all, delete-orphan')

    def to_dict(self, include_invite=False):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'setting': self.setting,
            'ruleSet': self.rule_set,
            'status': self.status,
            'maxPlayers': self.max_players,
            'imageUrl': self.image_url,
            'sessionCount': self.session_count,
            'lastPlayedAt': _iso(self.last_played_at),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
            'dm': self.dm.to_dict() if self.dm else None,
            '_count': {
                'members': len(self.members),
                'characters': len(self.characters),
                'gameSessions': len(self.game_sessions),
            },
        }
        # Only members ever see the invite code
        if include_invite:
            data['inviteCode'] = self.invite_code
        return data

    def __repr__(self):
        return f'<Campaign {self.name}>'


class CampaignMember(db.Model):
    __tablename__ = 'campaign_members'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    role = db.Column(db.String(10), default='PLAYER', nullable=False)   # DM / PLAYER
    joined_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('user_id', 'campaign_id', name='uq_member_user_campaign'),)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'campaignId': self.campaign_id,
            'role': self.role,
            'joinedAt': _iso(self.joined_at),
            'user': self.user.to_dict() if self.user else None,
        }

    def __repr__(self):
        return f'<CampaignMember user={self.user_id} campaign={self.campaign_id} {self.role}>'


class Character(db.Model):
    """A player's character sheet. The structured parts of the sheet
    (ability scores, HP, inventory, ...) are validated by schemas.CharacterCreate
    and stored as JSON."""
    __tablename__ = 'characters'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    name = db.Column(db.String(100), nullable=False)
    race = db.Column(db.String(100), nullable=False)
    class_name = db.Column(db.String(100), nullable=False)
    level = db.Column(db.Integer, default=1)
    alignment = db.Column(db.String(50), default='True Neutral')
    background = db.Column(db.String(100), default='')

    ability_scores = db.Column(db.JSON, nullable=False)
    hp = db.Column(db.JSON, nullable=False)
    armor_class = db.Column(db.Integer, default=10)
    initiative = db.Column(db.Integer, default=0)
    speed = db.Column(db.Integer, default=30)
    proficiency_bonus = db.Column(db.Integer, default=2)
    saving_throws = db.Column(db.JSON)
    skills = db.Column(db.JSON)
    spell_slots = db.Column(db.JSON)
    inventory = db.Column(db.JSON)
    death_saves = db.Column(db.JSON)
    currency = db.Column(db.JSON)

    traits = db.Column(db.Text, default='')
    ideals = db.Column(db.Text, default='')
    bonds = db.Column(db.Text, default='')
    flaws = db.Column(db.Text, default='')
    backstory = db.Column(db.Text, default='')
    notes = db.Column(db.Text, default='')
    avatar_url = db.Column(db.String(500))
    inspiration_points = db.Column(db.Integer, default=0)
    experience_points = db.Column(db.Integer, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # request field name -> column name, for the fields whose names differ
    FIELD_COLUMNS = {
        'class_': 'class_name',
    }

    def to_dict(self):
        return {
            'id': self.id,
            'campaignId': self.campaign_id,
            'playerId': self.player_id,
            'player': self.player.to_dict() if self.player else None,
            'name': self.name,
            'race': self.race,
            'class': self.class_name,
            'level': self.level,
            'alignment': self.alignment,
            'background': self.background,
            'abilityScores': self.ability_scores,
            'hp': self.hp,
            'armorClass': self.armor_class,
            'initiative': self.initiative,
            'speed': self.speed,
            'proficiencyBonus': self.proficiency_bonus,
            'savingThrows': self.saving_throws or {},
            'skills': self.skills or [],
            'spellSlots': self.spell_slots or [],
            'inventory': self.inventory or [],
            'deathSaves': self.death_saves,
            'currency': self.currency,
            'traits': self.traits,
            'ideals': self.ideals,
            'bonds': self.bonds,
            'flaws': self.flaws,
            'backstory': self.backstory,
            'notes': self.notes,
            'avatarUrl': self.avatar_url,
            'inspirationPoints': self.inspiration_points,
            'experiencePoints': self.experience_points,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<Character {self.name}>'


class GameSession(db.Model):
    """One play session within a campaign. Status moves
    LOBBY -> LIVE <-> PAUSED -> ENDED; see turns.transition_session()."""
    __tablename__ = 'game_sessions'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    dm_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    session_number = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(10), default='LOBBY', nullable=False)
    current_round = db.Column(db.Integer, default=0, nullable=False)
    connected_players = db.Column(db.JSON, default=list)   # list of user ids
    started_at = db.Column(db.DateTime)
    ended_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Turn order: highest initiative first, ties by insertion order
    initiative_entries = db.relationship(
        'InitiativeEntry', backref='session', lazy=True, cascade='all, delete-orphan',
        order_by=lambda: [InitiativeEntry.initiative.desc(), InitiativeEntry.id])
    combat_log = db.relationship('CombatLogEntry', backref='session', lazy='dynamic',
                                 cascade='all, delete-orphan')

    def to_dict(self, include_entries=True):
        data = {
            'id': self.id,
            'campaignId': self.campaign_id,
            'dmId': self.dm_id,
            'sessionNumber': self.session_number,
            'status': self.status,
            'currentRound': self.current_round,
            'connectedPlayers': self.connected_players or [],
            'startedAt': _iso(self.started_at),
            'endedAt': _iso(self.ended_at),
            'createdAt': _iso(self.created_at),
        }
        if include_entries:
            data['initiativeEntries'] = [e.to_dict() for e in self.initiative_entries]
        return data

    def __repr__(self):
        return f'<GameSession #{self.session_number} {self.status}>'


class InitiativeEntry(db.Model):
    __tablename__ = 'initiative_entries'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_sessions.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    initiative = db.Column(db.Integer, nullable=False)
    is_npc = db.Column(db.Boolean, default=False)
    hp = db.Column(db.JSON)                       # {"current": int, "max": int} or null
    armor_class = db.Column(db.Integer)
    character_id = db.Column(db.Integer, db.ForeignKey('characters.id', ondelete='SET NULL'))
    conditions = db.Column(db.JSON, default=list)
    concentrating_on = db.Column(db.String(100))
    # Exactly one entry should be active while a round runs. Only
    # turns.advance_turn() maintains that; there is no DB constraint.
    is_active = db.Column(db.Boolean, default=False, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'sessionId': self.session_id,
            'name': self.name,
            'initiative': self.initiative,
            'isNPC': self.is_npc,
            'hp': self.hp,
            'armorClass': self.armor_class,
            'characterId': self.character_id,
            'conditions': self.conditions or [],
            'concentratingOn': self.concentrating_on,
            'isActive': self.is_active,
        }

    def __repr__(self):
        return f'<InitiativeEntry {self.name} ({self.initiative})>'


class CombatLogEntry(db.Model):
    """Append-only record of what happened in a session.

    `result` is the human-readable line; `details` holds the structured
    payload (old/new HP, roll breakdown, ...) as real JSON rather than JSON
    embedded in the text."""
    __tablename__ = 'combat_log_entries'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_sessions.id'), nullable=False)
    round = db.Column(db.Integer, nullable=False, default=0)
    turn = db.Column(db.String(100), nullable=False)    # actor name
    action = db.Column(db.String(20), nullable=False)
    result = db.Column(db.Text, nullable=False)
    details = db.Column(db.JSON)
    # Who caused the row, when it came from a user request. SECRET_ROLL rows
    # are only shown to the DM and this user.
    actor_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'sessionId': self.session_id,
            'round': self.round,
            'turn': self.turn,
            'action': self.action,
            'result': self.result,
            'details': self.details,
            'actorId': self.actor_id,
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<CombatLogEntry r{self.round} {self.action} {self.turn}>'


class ChatMessage(db.Model):
    __tablename__ = 'chat_messages'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    sender_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))
    sender_name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(20), default='TEXT', nullable=False)
    channel = db.Column(db.String(20), default='GENERAL', nullable=False)
    content = db.Column(db.Text, nullable=False)
    character_name = db.Column(db.String(100))

    whisper_to = db.Column(db.Integer)           # recipient user id
    whisper_to_name = db.Column(db.String(100))

    dice_result = db.Column(db.JSON)
    combat_result = db.Column(db.JSON)
    reactions = db.Column(db.JSON, default=list)  # [{"emoji": str, "userIds": [int]}]
    pinned = db.Column(db.Boolean, default=False, nullable=False)

    reply_to_id = db.Column(db.Integer, db.ForeignKey('chat_messages.id', ondelete='SET NULL'))
    reply_to_preview = db.Column(db.String(200))
    reply_to_sender = db.Column(db.String(100))
    mentions = db.Column(db.JSON)
    mention_everyone = db.Column(db.Boolean, default=False)

    edited_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.Index('ix_chat_messages_campaign_channel', 'campaign_id', 'channel'),)

    def to_dict(self):
        return {
            'id': self.id,
            'campaignId': self.campaign_id,
            'senderId': self.sender_id,
            'senderName': self.sender_name,
            'type': self.type,
            'channel': self.channel,
            'content': self.content,
            'characterName': self.character_name,
            'whisperTo': self.whisper_to,
            'whisperToName': self.whisper_to_name,
            'diceResult': self.dice_result,
            'combatResult': self.combat_result,
            'reactions': self.reactions or [],
            'pinned': self.pinned,
            'replyToId': self.reply_to_id,
            'replyToPreview': self.reply_to_preview,
            'replyToSender': self.reply_to_sender,
            'mentions': self.mentions or [],
            'mentionEveryone': self.mention_everyone,
            'editedAt': _iso(self.edited_at),
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<ChatMessage {self.id} {self.channel}>'


class MapScene(db.Model):
    """A battle map. fog_revealed is a height x width grid of booleans,
    all False ("fully hidden") when the scene is created."""
    __tablename__ = 'map_scenes'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    grid_type = db.Column(db.String(10), default='square')
    grid_size = db.Column(db.Integer, default=40)
    width = db.Column(db.Integer, default=30, nullable=False)
    height = db.Column(db.Integer, default=20, nullable=False)
    background_image = db.Column(db.String(500))
    background_color = db.Column(db.String(20), default='#1a1a2e')
    fog_revealed = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tokens = db.relationship('MapToken', backref='scene', lazy=True,
                             cascade='all, delete-orphan', order_by='MapToken.id')
    drawings = db.relationship('MapDrawing', backref='scene', lazy=True,
                               cascade='all, delete-orphan', order_by='MapDrawing.id')

    def to_dict(self, tokens=None, drawings=None):
        """Pass filtered tokens/drawings for player views; defaults to all."""
        tokens = self.tokens if tokens is None else tokens
        drawings = self.drawings if drawings is None else drawings
        return {
            'id': self.id,
            'campaignId': self.campaign_id,
            'name': self.name,
            'gridType': self.grid_type,
            'gridSize': self.grid_size,
            'width': self.width,
            'height': self.height,
            'backgroundImage': self.background_image,
            'backgroundColor': self.background_color,
            'fogRevealed': self.fog_revealed,
            'tokens': [t.to_dict() for t in tokens],
            'drawings': [d.to_dict() for d in drawings],
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<MapScene {self.name} {self.width}x{self.height}>'


class MapToken(db.Model):
    __tablename__ = 'map_tokens'

    id = db.Column(db.Integer, primary_key=True)
    scene_id = db.Column(db.Integer, db.ForeignKey('map_scenes.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    x = db.Column(db.Integer, default=0)
    y = db.Column(db.Integer, default=0)
    size = db.Column(db.Integer, default=1)
    color = db.Column(db.String(20), default='#c9a96e')
    label = db.Column(db.String(4), default='')
    is_pc = db.Column(db.Boolean, default=False)
    character_id = db.Column(db.Integer, db.ForeignKey('characters.id', ondelete='SET NULL'))
    hp = db.Column(db.JSON)
    conditions = db.Column(db.JSON, default=list)
    vision = db.Column(db.Integer, default=6)
    darkvision = db.Column(db.Integer, default=0)
    light_radius = db.Column(db.Integer, default=0)
    dim_light_radius = db.Column(db.Integer, default=0)
    hidden = db.Column(db.Boolean, default=False, nullable=False)   # DM-only while True
    image_url = db.Column(db.String(500))

    def to_dict(self):
        return {
            'id': self.id,
            'sceneId': self.scene_id,
            'name': self.name,
            'x': self.x,
            'y': self.y,
            'size': self.size,
            'color': self.color,
            'label': self.label,
            'isPC': self.is_pc,
            'characterId': self.character_id,
            'hp': self.hp,
            'conditions': self.conditions or [],
            'vision': self.vision,
            'darkvision': self.darkvision,
            'lightRadius': self.light_radius,
            'dimLightRadius': self.dim_light_radius,
            'hidden': self.hidden,
            'imageUrl': self.image_url,
        }

    def __repr__(self):
        return f'<MapToken {self.name} @({self.x},{self.y})>'


class MapDrawing(db.Model):
    """Freehand/shape annotation on a scene. visible=False means DM-only."""
    __tablename__ = 'map_drawings'

    id = db.Column(db.Integer, primary_key=True)
    scene_id = db.Column(db.Integer, db.ForeignKey('map_scenes.id'), nullable=False)
    kind = db.Column(db.String(20), default='freehand')   # freehand / line / rect / circle / text
    points = db.Column(db.JSON, default=list)              # [[x, y], ...]
    color = db.Column(db.String(20), default='#ffffff')
    text = db.Column(db.String(200))
    visible = db.Column(db.Boolean, default=True, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'sceneId': self.scene_id,
            'kind': self.kind,
            'points': self.points or [],
            'color': self.color,
            'text': self.text,
            'visible': self.visible,
        }

    def __repr__(self):
        return f'<MapDrawing {self.kind}>'


class RollableTable(db.Model):
    """A rollable table of ranged results, e.g. {min: 1, max: 4, result: 'Rain'}.
    Rolling uses 1d<highest max> and picks the first range that contains it."""
    __tablename__ = 'rollable_tables'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default='')
    entries = db.Column(db.JSON, nullable=False)   # [{"min": int, "max": int, "result": str}]
    created_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'campaignId': self.campaign_id,
            'name': self.name,
            'description': self.description,
            'entries': self.entries or [],
            'createdBy': self.created_by,
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<RollableTable {self.name}>'


class Quest(db.Model):
    __tablename__ = 'quests'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default='')
    status = db.Column(db.String(20), default='HIDDEN', nullable=False)
    priority = db.Column(db.Integer, default=0)
    reward_xp = db.Column(db.Integer, default=0)
    reward_gold = db.Column(db.Integer, default=0)
    reward_items = db.Column(db.JSON, default=list)
    parent_id = db.Column(db.Integer, db.ForeignKey('quests.id', ondelete='SET NULL'))
    sort_order = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    objectives = db.relationship('QuestObjective', backref='quest', lazy=True,
                                 cascade='all, delete-orphan',
                                 order_by='QuestObjective.sort_order',
                                 foreign_keys='QuestObjective.quest_id')
    votes = db.relationship('QuestVote', backref='quest', lazy=True,
                            cascade='all, delete-orphan')
    children = db.relationship('Quest', backref=db.backref('parent', remote_side='Quest.id'),
                               lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'campaignId': self.campaign_id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'priority': self.priority,
            'rewardXP': self.reward_xp,
            'rewardGold': self.reward_gold,
            'rewardItems': self.reward_items or [],
            'parentId': self.parent_id,
            'objectives': [o.to_dict() for o in self.objectives],
            'votes': [{'userId': v.user_id, 'vote': v.vote} for v in self.votes],
            'voteTotal': sum(v.vote for v in self.votes),
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Quest {self.title}>'


class QuestObjective(db.Model):
    __tablename__ = 'quest_objectives'

    id = db.Column(db.Integer, primary_key=True)
    quest_id = db.Column(db.Integer, db.ForeignKey('quests.id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default='')
    sort_order = db.Column(db.Integer, default=0)
    is_completed = db.Column(db.Boolean, default=False)
    is_failed = db.Column(db.Boolean, default=False)
    # Completing this objective opens up another quest
    branch_quest_id = db.Column(db.Integer, db.ForeignKey('quests.id', ondelete='SET NULL'))

    def to_dict(self):
        return {
            'id': self.id,
            'questId': self.quest_id,
            'title': self.title,
            'description': self.description,
            'sortOrder': self.sort_order,
            'isCompleted': self.is_completed,
            'isFailed': self.is_failed,
            'branchQuestId': self.branch_quest_id,
        }

    def __repr__(self):
        return f'<QuestObjective {self.title}>'


class QuestVote(db.Model):
    __tablename__ = 'quest_votes'

    id = db.Column(db.Integer, primary_key=True)
    quest_id = db.Column(db.Integer, db.ForeignKey('quests.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    vote = db.Column(db.Integer, default=1, nullable=False)   # +1 / -1

    __table_args__ = (db.UniqueConstraint('quest_id', 'user_id', name='uq_quest_vote_user'),)

    def __repr__(self):
        return f'<QuestVote quest={self.quest_id} user={self.user_id} {self.vote:+d}>'


class LoreEntry(db.Model):
    """A lore wiki page. content is Markdown; [[Other Page]] links resolve
    to sibling entries by slug when rendered (see lore.render_lore())."""
    __tablename__ = 'lore_entries'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(220), nullable=False)
    category = db.Column(db.String(50), default='MISC')
    content = db.Column(db.Text, default='')
    summary = db.Column(db.String(500), default='')
    tags = db.Column(db.JSON, default=list)
    is_secret = db.Column(db.Boolean, default=False, nullable=False)   # DM-only
    parent_id = db.Column(db.Integer, db.ForeignKey('lore_entries.id', ondelete='SET NULL'))
    created_by_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    children = db.relationship('LoreEntry', backref=db.backref('parent', remote_side='LoreEntry.id'),
                               lazy=True)

    __table_args__ = (db.UniqueConstraint('campaign_id', 'slug', name='uq_lore_slug_campaign'),)

    def to_dict(self):
        return {
            'id': self.id,
            'campaignId': self.campaign_id,
            'title': self.title,
            'slug': self.slug,
            'category': self.category,
            'content': self.content,
            'summary': self.summary,
            'tags': self.tags or [],
            'isSecret': self.is_secret,
            'parentId': self.parent_id,
            'createdById': self.created_by_id,
            'updatedAt': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<LoreEntry {self.slug}>'


class NPC(db.Model):
    __tablename__ = 'npcs'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    race = db.Column(db.String(50), default='')
    description = db.Column(db.Text, default='')
    personality = db.Column(db.Text, default='')
    motivation = db.Column(db.Text, default='')
    stats = db.Column(db.JSON)                     # {"STR": 14, ...} or null
    hp = db.Column(db.Integer)
    armor_class = db.Column(db.Integer)
    is_alive = db.Column(db.Boolean, default=True, nullable=False)
    location = db.Column(db.String(200))
    notes = db.Column(db.Text, default='')
    image_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'campaignId': self.campaign_id,
            'name': self.name,
            'race': self.race,
            'description': self.description,
            'personality': self.personality,
            'motivation': self.motivation,
            'stats': self.stats,
            'hp': self.hp,
            'armorClass': self.armor_class,
            'isAlive': self.is_alive,
            'location': self.location,
            'notes': self.notes,
            'imageUrl': self.image_url,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<NPC {self.name}>'


class EncounterTemplate(db.Model):
    """A prepared fight the DM can drop into a session. monsters is a list of
    {"name", "cr", "count", "hp", "ac"} rows. DM-only."""
    __tablename__ = 'encounter_templates'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    monsters = db.Column(db.JSON, nullable=False)
    difficulty = db.Column(db.String(10), default='medium', nullable=False)
    xp_total = db.Column(db.Integer, default=0)
    notes = db.Column(db.Text, default='')
    created_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        monsters = self.monsters or []
        return {
            'id': self.id,
            'campaignId': self.campaign_id,
            'name': self.name,
            'monsters': monsters,
            'monsterCount': sum(m.get('count', 1) for m in monsters),
            'difficulty': self.difficulty,
            'xpTotal': self.xp_total,
            'notes': self.notes,
            'createdBy': self.created_by,
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<EncounterTemplate {self.name} ({self.difficulty})>'


class TimelineEvent(db.Model):
    """One entry on the campaign's story timeline. real_date is when it was
    recorded; in_game_date is free text in the setting's own calendar."""
    __tablename__ = 'timeline_events'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default='')
    in_game_date = db.Column(db.String(100))
    session_number = db.Column(db.Integer, default=1)
    type = db.Column(db.String(20), default='story', nullable=False)
    icon = db.Column(db.String(8))
    real_date = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'campaignId': self.campaign_id,
            'title': self.title,
            'description': self.description,
            'inGameDate': self.in_game_date,
            'sessionNumber': self.session_number,
            'type': self.type,
            'icon': self.icon,
            'realDate': _iso(self.real_date),
        }

    def __repr__(self):
        return f'<TimelineEvent {self.title}>'


class AuditLog(db.Model):
    """Append-only record of admin actions. Written by guards.audit()."""
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))
    action = db.Column(db.String(100), nullable=False)        # e.g. 'user.update'
    target_type = db.Column(db.String(50))
    target_id = db.Column(db.String(50))
    details = db.Column(db.JSON)
    ip_address = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', foreign_keys=[user_id])

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'user': self.user.to_dict() if self.user else None,
            'action': self.action,
            'targetType': self.target_type,
            'targetId': self.target_id,
            'details': self.details,
            'ipAddress': self.ip_address,
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<AuditLog {self.action} {self.target_type}:{self.target_id}>'


class Report(db.Model):
    """A user's complaint about another user, a campaign or a chat message.
    Staff work through them in the moderation queue."""
    __tablename__ = 'reports'

    id = db.Column(db.Integer, primary_key=True)
    reporter_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))
    target_type = db.Column(db.String(20), nullable=False)   # User / Campaign / ChatMessage
    target_id = db.Column(db.String(50), nullable=False)
    reason = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default='')
    status = db.Column(db.String(20), default='PENDING', nullable=False)
    resolution = db.Column(db.Text)
    resolved_by_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reporter = db.relationship('User', foreign_keys=[reporter_id])
    resolved_by = db.relationship('User', foreign_keys=[resolved_by_id])

    def to_dict(self):
        return {
            'id': self.id,
            'reporterId': self.reporter_id,
            'reporter': self.reporter.to_dict() if self.reporter else None,
            'targetType': self.target_type,
            'targetId': self.target_id,
            'reason': self.reason,
            'description': self.description,
            'status': self.status,
            'resolution': self.resolution,
            'resolvedBy': self.resolved_by.to_dict() if self.resolved_by else None,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<Report {self.target_type}:{self.target_id} {self.status}>'


class AppSetting(db.Model):
    """Key-value store for platform settings (signup switch, banner text, ...).

    Settings are stored in the database so admins can change them through
    the admin API without editing .env files or restarting the app.
    """
    __tablename__ = 'app_settings'

    # Known keys and their defaults. Unknown keys are rejected by the admin API.
    DEFAULTS = {
        'allow_signup': 'true',
        'maintenance_message': '',
    }

    key = db.Column(db.String(100), primary_key=True)
    value = db.Column(db.Text, nullable=True)

    @staticmethod
    def get(key, default=None):
        """Get a setting value by key, falling back to DEFAULTS then default."""
        row = db.session.get(AppSetting, key)
        if row is None:
            return AppSetting.DEFAULTS.get(key, default)
        return row.value

    @staticmethod
    def set(key, value):
        """Set a setting value, creating or updating the row. Caller commits."""
        row = db.session.get(AppSetting, key)
        if row:
            row.value = value
        else:
            row = AppSetting(key=key, value=value)
            db.session.add(row)

    @staticmethod
    def get_all_dict():
        """Return every known setting (stored value or default) as a plain dict."""
        values = dict(AppSetting.DEFAULTS)
        values.update({s.key: s.value for s in AppSetting.query.all()})
        return values

    def __repr__(self):
        return f'<AppSetting {self.key}={self.value}>'
