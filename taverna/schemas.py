"""Request body schemas.

Every JSON body is validated here before a handler touches the database.
Fields are snake_case in Python and camelCase on the wire (alias_generator),
so handlers can do `data.max_players` while clients send `maxPlayers`.

Update schemas make every field optional; handlers apply only the fields
the client actually sent via `model_dump(exclude_unset=True)`.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from taverna.models import (
    CAMPAIGN_STATUSES, CHAT_CHANNELS, ENCOUNTER_DIFFICULTIES, MANUAL_COMBAT_ACTIONS,
    MESSAGE_TYPES, PLATFORM_ROLES, QUEST_STATUSES, REPORT_STATUSES, REPORT_TARGET_TYPES,
    SESSION_STATUSES, TIMELINE_EVENT_TYPES,
)


class Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True,
                              extra='ignore')


EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'
DICE_PATTERN = r'(?i)^\s*\d+d\d+'

# Literal[tuple] expands to one Literal member per value
PlatformRole = Literal[PLATFORM_ROLES]
CampaignStatus = Literal[CAMPAIGN_STATUSES]
SessionStatus = Literal[SESSION_STATUSES]
ManualCombatAction = Literal[MANUAL_COMBAT_ACTIONS]
MessageType = Literal[MESSAGE_TYPES]
ChatChannel = Literal[CHAT_CHANNELS]
QuestStatus = Literal[QUEST_STATUSES]
EncounterDifficulty = Literal[ENCOUNTER_DIFFICULTIES]
TimelineEventType = Literal[TIMELINE_EVENT_TYPES]
ReportTargetType = Literal[REPORT_TARGET_TYPES]
# PENDING is where every report starts; staff move it on from there
ReportResolution = Literal[tuple(s for s in REPORT_STATUSES if s != 'PENDING')]


# ── Auth & profile ───────────────────────────────────────────────────────────

class RegisterBody(Schema):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=256)
    password: str = Field(min_length=8, max_length=100)
    display_name: str = Field(min_length=2, max_length=50)


class LoginBody(Schema):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ProfileUpdate(Schema):
    display_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    image: Optional[str] = Field(default=None, max_length=500)


class PasswordChange(Schema):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=100)


# ── Campaigns ────────────────────────────────────────────────────────────────

class CampaignCreate(Schema):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default='', max_length=2000)
    setting: str = Field(default='', max_length=500)
    rule_set: str = Field(default='D&D 5e', max_length=100)
    max_players: int = Field(default=6, ge=1, le=20)
    image_url: Optional[str] = Field(default=None, max_length=500)


class CampaignUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    setting: Optional[str] = Field(default=None, max_length=500)
    rule_set: Optional[str] = Field(default=None, max_length=100)
    max_players: Optional[int] = Field(default=None, ge=1, le=20)
    image_url: Optional[str] = Field(default=None, max_length=500)
    status: Optional[CampaignStatus] = None


class JoinCampaign(Schema):
    invite_code: str = Field(min_length=1)


# ── Characters ───────────────────────────────────────────────────────────────

class AbilityScores(Schema):
    strength: int = Field(ge=1, le=30)
    dexterity: int = Field(ge=1, le=30)
    constitution: int = Field(ge=1, le=30)
    intelligence: int = Field(ge=1, le=30)
    wisdom: int = Field(ge=1, le=30)
    charisma: int = Field(ge=1, le=30)


class HitPoints(Schema):
    current: int = Field(ge=0)
    max: int = Field(ge=1)
    temp: int = Field(default=0, ge=0)


class DeathSaves(Schema):
    successes: int = Field(default=0, ge=0, le=3)
    failures: int = Field(default=0, ge=0, le=3)


class Currency(Schema):
    cp: int = Field(default=0, ge=0)
    sp: int = Field(default=0, ge=0)
    ep: int = Field(default=0, ge=0)
    gp: int = Field(default=0, ge=0)
    pp: int = Field(default=0, ge=0)


class Skill(Schema):
    name: str = Field(min_length=1, max_length=50)
    ability: str = Field(default='', max_length=20)
    proficient: bool = False
    expertise: bool = False


class SpellSlot(Schema):
    level: int = Field(ge=1, le=9)
    total: int = Field(ge=0)
    used: int = Field(default=0, ge=0)

    @model_validator(mode='after')
    def used_within_total(self):
        if self.used > self.total:
            raise ValueError('used cannot exceed total')
        return self


class InventoryItem(Schema):
    name: str = Field(min_length=1, max_length=100)
    quantity: int = Field(default=1, ge=0)
    weight: float = Field(default=0, ge=0)
    equipped: bool = False
    notes: str = Field(default='', max_length=500)


class CharacterCreate(Schema):
    name: str = Field(min_length=1, max_length=100)
    race: str = Field(min_length=1, max_length=100)
    class_: str = Field(alias='class', min_length=1, max_length=100)
    level: int = Field(default=1, ge=1, le=20)
    alignment: str = Field(default='True Neutral', max_length=50)
    background: str = Field(default='', max_length=100)
    ability_scores: AbilityScores
    hp: HitPoints
    armor_class: int = Field(default=10, ge=0, le=40)
    initiative: int = 0
    speed: int = Field(default=30, ge=0)
    proficiency_bonus: int = Field(default=2, ge=1, le=9)
    saving_throws: dict[str, bool] = Field(default_factory=dict)
    skills: List[Skill] = Field(default_factory=list)
    spell_slots: List[SpellSlot] = Field(default_factory=list)
    inventory: List[InventoryItem] = Field(default_factory=list)
    death_saves: DeathSaves = Field(default_factory=DeathSaves)
    currency: Optional[Currency] = None
    traits: str = Field(default='', max_length=2000)
    ideals: str = Field(default='', max_length=2000)
    bonds: str = Field(default='', max_length=2000)
    flaws: str = Field(default='', max_length=2000)
    backstory: str = Field(default='', max_length=10000)
    notes: str = Field(default='', max_length=10000)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    inspiration_points: int = Field(default=0, ge=0)
    experience_points: int = Field(default=0, ge=0)


class CharacterUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    race: Optional[str] = Field(default=None, min_length=1, max_length=100)
    class_: Optional[str] = Field(default=None, alias='class', min_length=1, max_length=100)
    level: Optional[int] = Field(default=None, ge=1, le=20)
    alignment: Optional[str] = Field(default=None, max_length=50)
    background: Optional[str] = Field(default=None, max_length=100)
    ability_scores: Optional[AbilityScores] = None
    hp: Optional[HitPoints] = None
    armor_class: Optional[int] = Field(default=None, ge=0, le=40)
    initiative: Optional[int] = None
    speed: Optional[int] = Field(default=None, ge=0)
    proficiency_bonus: Optional[int] = Field(default=None, ge=1, le=9)
    saving_throws: Optional[dict[str, bool]] = None
    skills: Optional[List[Skill]] = None
    spell_slots: Optional[List[SpellSlot]] = None
    inventory: Optional[List[InventoryItem]] = None
    death_saves: Optional[DeathSaves] = None
    currency: Optional[Currency] = None
    traits: Optional[str] = Field(default=None, max_length=2000)
    ideals: Optional[str] = Field(default=None, max_length=2000)
    bonds: Optional[str] = Field(default=None, max_length=2000)
    flaws: Optional[str] = Field(default=None, max_length=2000)
    backstory: Optional[str] = Field(default=None, max_length=10000)
    notes: Optional[str] = Field(default=None, max_length=10000)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    inspiration_points: Optional[int] = Field(default=None, ge=0)
    experience_points: Optional[int] = Field(default=None, ge=0)


# ── Sessions, initiative & combat log ────────────────────────────────────────

class SessionCreate(Schema):
    session_number: int = Field(ge=1)


class SessionStatusUpdate(Schema):
    status: SessionStatus


class EntryHP(Schema):
    current: int
    max: int


class InitiativeCreate(Schema):
    name: str = Field(min_length=1, max_length=100)
    initiative: int = Field(ge=-10, le=50)
    is_npc: bool = Field(default=False, alias='isNPC')
    hp: Optional[EntryHP] = None
    armor_class: Optional[int] = None
    character_id: Optional[int] = None
    is_active: bool = False


class InitiativeUpdate(Schema):
    hp: Optional[EntryHP] = None
    armor_class: Optional[int] = None
    conditions: Optional[List[str]] = None
    concentrating_on: Optional[str] = Field(default=None, max_length=100)
    initiative: Optional[int] = Field(default=None, ge=-10, le=50)
    is_active: Optional[bool] = None


class CombatLogCreate(Schema):
    action: ManualCombatAction
    turn: str = Field(min_length=1, max_length=100)
    result: str = Field(min_length=1, max_length=2000)
    details: Optional[dict[str, Any]] = None


# ── Dice & tables ────────────────────────────────────────────────────────────

class DiceRoll(Schema):
    formula: str = Field(min_length=1, max_length=100, pattern=DICE_PATTERN)
    label: Optional[str] = Field(default=None, max_length=100)
    character_name: Optional[str] = Field(default=None, max_length=100)


class SessionRoll(DiceRoll):
    is_private: bool = False


class TableEntry(Schema):
    min: int = Field(ge=1, le=1000)
    max: int = Field(ge=1, le=1000)
    result: str = Field(min_length=1, max_length=1000)

    @model_validator(mode='after')
    def range_is_ordered(self):
        if self.min > self.max:
            raise ValueError('min cannot be greater than max')
        return self


class RollableTableCreate(Schema):
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(default='', max_length=2000)
    entries: List[TableEntry] = Field(default_factory=list)


# ── Chat ─────────────────────────────────────────────────────────────────────

class MessageCreate(Schema):
    type: MessageType = 'TEXT'
    content: str = Field(min_length=1, max_length=4000)
    channel: ChatChannel = 'GENERAL'
    character_name: Optional[str] = Field(default=None, max_length=100)
    whisper_to: Optional[int] = None
    whisper_to_name: Optional[str] = Field(default=None, max_length=100)
    dice_result: Optional[Any] = None
    combat_result: Optional[Any] = None
    reply_to_id: Optional[int] = None
    reply_to_preview: Optional[str] = Field(default=None, max_length=200)
    reply_to_sender: Optional[str] = Field(default=None, max_length=100)
    mentions: Optional[List[int]] = None
    mention_everyone: bool = False


class MessageEdit(Schema):
    content: str = Field(min_length=1, max_length=4000)


class ReactionToggle(Schema):
    emoji: str = Field(min_length=1, max_length=8)


# ── Maps ─────────────────────────────────────────────────────────────────────

class SceneCreate(Schema):
    name: str = Field(min_length=1, max_length=200)
    grid_type: Literal['square', 'hex'] = 'square'
    grid_size: int = Field(default=40, ge=10, le=200)
    width: int = Field(default=30, ge=5, le=100)
    height: int = Field(default=20, ge=5, le=100)
    background_image: Optional[str] = Field(default=None, max_length=500)
    background_color: str = Field(default='#1a1a2e', max_length=20)


class SceneUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    grid_type: Optional[Literal['square', 'hex']] = None
    grid_size: Optional[int] = Field(default=None, ge=10, le=200)
    width: Optional[int] = Field(default=None, ge=5, le=100)
    height: Optional[int] = Field(default=None, ge=5, le=100)
    background_image: Optional[str] = Field(default=None, max_length=500)
    background_color: Optional[str] = Field(default=None, max_length=20)


class FogCell(Schema):
    row: int = Field(ge=0)
    col: int = Field(ge=0)


class FogReveal(Schema):
    cells: List[FogCell]


class TokenCreate(Schema):
    name: str = Field(min_length=1, max_length=100)
    x: int = Field(default=0, ge=0)
    y: int = Field(default=0, ge=0)
    size: int = Field(default=1, ge=1, le=6)
    color: str = Field(default='#c9a96e', max_length=20)
    label: str = Field(default='', max_length=4)
    is_pc: bool = Field(default=False, alias='isPC')
    character_id: Optional[int] = None
    hp: Optional[EntryHP] = None
    conditions: List[str] = Field(default_factory=list)
    vision: int = 6
    darkvision: int = 0
    light_radius: int = 0
    dim_light_radius: int = 0
    hidden: bool = False
    image_url: Optional[str] = Field(default=None, max_length=500)


class TokenUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    x: Optional[int] = Field(default=None, ge=0)
    y: Optional[int] = Field(default=None, ge=0)
    size: Optional[int] = Field(default=None, ge=1, le=6)
    color: Optional[str] = Field(default=None, max_length=20)
    label: Optional[str] = Field(default=None, max_length=4)
    is_pc: Optional[bool] = Field(default=None, alias='isPC')
    character_id: Optional[int] = None
    hp: Optional[EntryHP] = None
    conditions: Optional[List[str]] = None
    vision: Optional[int] = None
    darkvision: Optional[int] = None
    light_radius: Optional[int] = None
    dim_light_radius: Optional[int] = None
    hidden: Optional[bool] = None
    image_url: Optional[str] = Field(default=None, max_length=500)


class DrawingCreate(Schema):
    kind: Literal['freehand', 'line', 'rect', 'circle', 'text'] = 'freehand'
    points: List[List[float]] = Field(default_factory=list)
    color: str = Field(default='#ffffff', max_length=20)
    text: Optional[str] = Field(default=None, max_length=200)
    visible: bool = True


# ── Quests & lore ────────────────────────────────────────────────────────────

class ObjectiveCreate(Schema):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default='', max_length=2000)
    branch_quest_id: Optional[int] = None


class QuestCreate(Schema):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default='', max_length=10000)
    status: QuestStatus = 'HIDDEN'
    priority: int = 0
    reward_xp: int = Field(default=0, ge=0, alias='rewardXP')
    reward_gold: int = Field(default=0, ge=0)
    reward_items: List[str] = Field(default_factory=list)
    parent_id: Optional[int] = None
    objectives: List[ObjectiveCreate] = Field(default_factory=list)


class QuestUpdate(Schema):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=10000)
    status: Optional[QuestStatus] = None
    priority: Optional[int] = None
    reward_xp: Optional[int] = Field(default=None, ge=0, alias='rewardXP')
    reward_gold: Optional[int] = Field(default=None, ge=0)
    reward_items: Optional[List[str]] = None
    parent_id: Optional[int] = None


class ObjectiveUpdate(Schema):
    objective_id: int
    is_completed: Optional[bool] = None
    is_failed: Optional[bool] = None


class QuestVoteBody(Schema):
    vote: Literal[-1, 1] = 1


class LoreCreate(Schema):
    title: str = Field(min_length=1, max_length=200)
    category: str = Field(default='MISC', max_length=50)
    content: str = Field(default='', max_length=50000)
    summary: str = Field(default='', max_length=500)
    tags: List[str] = Field(default_factory=list)
    is_secret: bool = False
    parent_id: Optional[int] = None


class LoreUpdate(Schema):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, max_length=50)
    content: Optional[str] = Field(default=None, max_length=50000)
    summary: Optional[str] = Field(default=None, max_length=500)
    tags: Optional[List[str]] = None
    is_secret: Optional[bool] = None
    parent_id: Optional[int] = None


# ── NPCs, encounters & timeline ──────────────────────────────────────────────

class NPCCreate(Schema):
    name: str = Field(min_length=1, max_length=100)
    race: str = Field(default='', max_length=50)
    description: str = Field(default='', max_length=5000)
    personality: str = Field(default='', max_length=2000)
    motivation: str = Field(default='', max_length=2000)
    stats: Optional[dict[str, int]] = None
    hp: Optional[int] = Field(default=None, ge=0)
    armor_class: Optional[int] = Field(default=None, ge=0, le=40)
    is_alive: bool = True
    location: Optional[str] = Field(default=None, max_length=200)
    notes: str = Field(default='', max_length=5000)
    image_url: Optional[str] = Field(default=None, max_length=500)


class NPCUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    race: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = Field(default=None, max_length=5000)
    personality: Optional[str] = Field(default=None, max_length=2000)
    motivation: Optional[str] = Field(default=None, max_length=2000)
    stats: Optional[dict[str, int]] = None
    hp: Optional[int] = Field(default=None, ge=0)
    armor_class: Optional[int] = Field(default=None, ge=0, le=40)
    is_alive: Optional[bool] = None
    location: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=5000)
    image_url: Optional[str] = Field(default=None, max_length=500)


class EncounterMonster(Schema):
    name: str = Field(min_length=1, max_length=100)
    cr: float = Field(ge=0, le=30)
    count: int = Field(default=1, ge=1, le=100)
    hp: int = Field(ge=0)
    ac: int = Field(ge=0, le=40)


class EncounterCreate(Schema):
    name: str = Field(min_length=1, max_length=200)
    monsters: List[EncounterMonster]
    difficulty: EncounterDifficulty = 'medium'
    xp_total: int = Field(default=0, ge=0)
    notes: str = Field(default='', max_length=5000)


class EncounterUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    monsters: Optional[List[EncounterMonster]] = None
    difficulty: Optional[EncounterDifficulty] = None
    xp_total: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=5000)


class TimelineEventCreate(Schema):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default='', max_length=5000)
    in_game_date: Optional[str] = Field(default=None, max_length=100)
    session_number: int = Field(default=1, ge=0)
    type: TimelineEventType = 'story'
    icon: Optional[str] = Field(default=None, max_length=4)


class TimelineEventUpdate(Schema):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    in_game_date: Optional[str] = Field(default=None, max_length=100)
    session_number: Optional[int] = Field(default=None, ge=0)
    type: Optional[TimelineEventType] = None
    icon: Optional[str] = Field(default=None, max_length=4)


# ── Reports ──────────────────────────────────────────────────────────────────

class ReportCreate(Schema):
    target_type: ReportTargetType
    target_id: int = Field(ge=1)
    reason: str = Field(min_length=1, max_length=200)
    description: str = Field(default='', max_length=2000)


class ReportResolve(Schema):
    status: ReportResolution
    resolution: Optional[str] = Field(default=None, max_length=2000)


# ── Admin ────────────────────────────────────────────────────────────────────

class AdminUserUpdate(Schema):
    role: Optional[PlatformRole] = None
    is_banned: Optional[bool] = None
    ban_reason: Optional[str] = Field(default=None, max_length=500)
    display_name: Optional[str] = Field(default=None, min_length=2, max_length=50)


class SettingsUpdate(Schema):
    allow_signup: Optional[bool] = None
    maintenance_message: Optional[str] = Field(default=None, max_length=500)
