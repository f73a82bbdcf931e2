"""Initial schema: users, campaigns, sessions, chat, maps, quests, lore, admin

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = '3f1a9c2e7b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=256), nullable=False),
        sa.Column('display_name', sa.String(length=50), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('image', sa.String(length=500), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_banned', sa.Boolean(), nullable=False),
        sa.Column('ban_reason', sa.String(length=500), nullable=True),
        sa.Column('banned_at', sa.DateTime(), nullable=True),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_table('app_settings',
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('key')
    )
    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('target_type', sa.String(length=50), nullable=True),
        sa.Column('target_id', sa.String(length=50), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('campaigns',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('dm_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('setting', sa.String(length=500), nullable=True),
        sa.Column('rule_set', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('max_players', sa.Integer(), nullable=False),
        sa.Column('invite_code', sa.String(length=32), nullable=False),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('session_count', sa.Integer(), nullable=True),
        sa.Column('last_played_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['dm_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invite_code')
    )
    op.create_table('campaign_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=10), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'campaign_id', name='uq_member_user_campaign')
    )
    op.create_table('characters',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('race', sa.String(length=100), nullable=False),
        sa.Column('class_name', sa.String(length=100), nullable=False),
        sa.Column('level', sa.Integer(), nullable=True),
        sa.Column('alignment', sa.String(length=50), nullable=True),
        sa.Column('background', sa.String(length=100), nullable=True),
        sa.Column('ability_scores', sa.JSON(), nullable=False),
        sa.Column('hp', sa.JSON(), nullable=False),
        sa.Column('armor_class', sa.Integer(), nullable=True),
        sa.Column('initiative', sa.Integer(), nullable=True),
        sa.Column('speed', sa.Integer(), nullable=True),
        sa.Column('proficiency_bonus', sa.Integer(), nullable=True),
        sa.Column('saving_throws', sa.JSON(), nullable=True),
        sa.Column('skills', sa.JSON(), nullable=True),
        sa.Column('spell_slots', sa.JSON(), nullable=True),
        sa.Column('inventory', sa.JSON(), nullable=True),
        sa.Column('death_saves', sa.JSON(), nullable=True),
        sa.Column('currency', sa.JSON(), nullable=True),
        sa.Column('traits', sa.Text(), nullable=True),
        sa.Column('ideals', sa.Text(), nullable=True),
        sa.Column('bonds', sa.Text(), nullable=True),
        sa.Column('flaws', sa.Text(), nullable=True),
        sa.Column('backstory', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('inspiration_points', sa.Integer(), nullable=True),
        sa.Column('experience_points', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['player_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('game_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('dm_id', sa.Integer(), nullable=False),
        sa.Column('session_number', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False),
        sa.Column('current_round', sa.Integer(), nullable=False),
        sa.Column('connected_players', sa.JSON(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['dm_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('initiative_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('initiative', sa.Integer(), nullable=False),
        sa.Column('is_npc', sa.Boolean(), nullable=True),
        sa.Column('hp', sa.JSON(), nullable=True),
        sa.Column('armor_class', sa.Integer(), nullable=True),
        sa.Column('character_id', sa.Integer(), nullable=True),
        sa.Column('conditions', sa.JSON(), nullable=True),
        sa.Column('concentrating_on', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['character_id'], ['characters.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['session_id'], ['game_sessions.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('combat_log_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('round', sa.Integer(), nullable=False),
        sa.Column('turn', sa.String(length=100), nullable=False),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('result', sa.Text(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['session_id'], ['game_sessions.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('chat_messages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=True),
        sa.Column('sender_name', sa.String(length=100), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('channel', sa.String(length=20), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('character_name', sa.String(length=100), nullable=True),
        sa.Column('whisper_to', sa.Integer(), nullable=True),
        sa.Column('whisper_to_name', sa.String(length=100), nullable=True),
        sa.Column('dice_result', sa.JSON(), nullable=True),
        sa.Column('combat_result', sa.JSON(), nullable=True),
        sa.Column('reactions', sa.JSON(), nullable=True),
        sa.Column('pinned', sa.Boolean(), nullable=False),
        sa.Column('reply_to_id', sa.Integer(), nullable=True),
        sa.Column('reply_to_preview', sa.String(length=200), nullable=True),
        sa.Column('reply_to_sender', sa.String(length=100), nullable=True),
        sa.Column('mentions', sa.JSON(), nullable=True),
        sa.Column('mention_everyone', sa.Boolean(), nullable=True),
        sa.Column('edited_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['reply_to_id'], ['chat_messages.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_chat_messages_campaign_channel', 'chat_messages', ['campaign_id', 'channel'])
    op.create_table('map_scenes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('grid_type', sa.String(length=10), nullable=True),
        sa.Column('grid_size', sa.Integer(), nullable=True),
        sa.Column('width', sa.Integer(), nullable=False),
        sa.Column('height', sa.Integer(), nullable=False),
        sa.Column('background_image', sa.String(length=500), nullable=True),
        sa.Column('background_color', sa.String(length=20), nullable=True),
        sa.Column('fog_revealed', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('map_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('scene_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('x', sa.Integer(), nullable=True),
        sa.Column('y', sa.Integer(), nullable=True),
        sa.Column('size', sa.Integer(), nullable=True),
        sa.Column('color', sa.String(length=20), nullable=True),
        sa.Column('label', sa.String(length=4), nullable=True),
        sa.Column('is_pc', sa.Boolean(), nullable=True),
        sa.Column('character_id', sa.Integer(), nullable=True),
        sa.Column('hp', sa.JSON(), nullable=True),
        sa.Column('conditions', sa.JSON(), nullable=True),
        sa.Column('vision', sa.Integer(), nullable=True),
        sa.Column('darkvision', sa.Integer(), nullable=True),
        sa.Column('light_radius', sa.Integer(), nullable=True),
        sa.Column('dim_light_radius', sa.Integer(), nullable=True),
        sa.Column('hidden', sa.Boolean(), nullable=False),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(['character_id'], ['characters.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['scene_id'], ['map_scenes.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('map_drawings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('scene_id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=True),
        sa.Column('points', sa.JSON(), nullable=True),
        sa.Column('color', sa.String(length=20), nullable=True),
        sa.Column('text', sa.String(length=200), nullable=True),
        sa.Column('visible', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['scene_id'], ['map_scenes.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('rollable_tables',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('entries', sa.JSON(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('quests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=True),
        sa.Column('reward_xp', sa.Integer(), nullable=True),
        sa.Column('reward_gold', sa.Integer(), nullable=True),
        sa.Column('reward_items', sa.JSON(), nullable=True),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['parent_id'], ['quests.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('quest_objectives',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quest_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=True),
        sa.Column('is_completed', sa.Boolean(), nullable=True),
        sa.Column('is_failed', sa.Boolean(), nullable=True),
        sa.Column('branch_quest_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['branch_quest_id'], ['quests.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['quest_id'], ['quests.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('quest_votes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quest_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('vote', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['quest_id'], ['quests.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quest_id', 'user_id', name='uq_quest_vote_user')
    )
    op.create_table('lore_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('campaign_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('slug', sa.String(length=220), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('summary', sa.String(length=500), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('is_secret', sa.Boolean(), nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['parent_id'], ['lore_entries.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('campaign_id', 'slug', name='uq_lore_slug_campaign')
    )


def downgrade():
    op.drop_table('lore_entries')
    op.drop_table('quest_votes')
    op.drop_table('quest_objectives')
    op.drop_table('quests')
    op.drop_table('rollable_tables')
    op.drop_table('map_drawings')
    op.drop_table('map_tokens')
    op.drop_table('map_scenes')
    op.drop_index('ix_chat_messages_campaign_channel', table_name='chat_messages')
    op.drop_table('chat_messages')
    op.drop_table('combat_log_entries')
    op.drop_table('initiative_entries')
    op.drop_table('game_sessions')
    op.drop_table('characters')
    op.drop_table('campaign_members')
    op.drop_table('campaigns')
    op.drop_table('audit_logs')
    op.drop_table('app_settings')
    op.drop_table('users')
