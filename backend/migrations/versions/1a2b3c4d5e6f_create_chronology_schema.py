"""create chronology schema

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'deck',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
    )
    op.create_index('ix_deck_name', 'deck', ['name'], unique=True)

    op.create_table(
        'card',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('deck_id', sa.Integer(), sa.ForeignKey('deck.id'), nullable=False),
        sa.Column('category', sa.String(length=16), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=True),
    )
    op.create_index('ix_card_deck_id', 'card', ['deck_id'])

    op.create_table(
        'lobby',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('game_type', sa.String(length=32), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_lobby_name', 'lobby', ['name'])

    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('lobby_id', sa.Integer(), sa.ForeignKey('lobby.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('join_order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('lobby_id', 'user_id', name='uq_player_lobby_user'),
    )
    op.create_index('ix_player_lobby_id', 'player', ['lobby_id'])

    op.create_table(
        'chronology_game',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('lobby_id', sa.Integer(), sa.ForeignKey('lobby.id'), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('cards_to_win', sa.Integer(), nullable=False),
        sa.Column('current_player_id', sa.Integer(),
                  sa.ForeignKey('player.id', name='fk_chronology_game_current_player_id'), nullable=True),
        sa.Column('winner_id', sa.Integer(),
                  sa.ForeignKey('player.id', name='fk_chronology_game_winner_id'), nullable=True),
        sa.Column('current_card_id', sa.Integer(),
                  sa.ForeignKey('card.id', name='fk_chronology_game_current_card_id'), nullable=True),
        sa.Column('current_card_year', sa.Integer(), nullable=True),
    )

    op.create_table(
        'chronology_draw_pile',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('chronology_game.id'), nullable=False),
        sa.Column('card_id', sa.Integer(), sa.ForeignKey('card.id'), nullable=False),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('drawn', sa.Boolean(), nullable=False),
        sa.UniqueConstraint('game_id', 'card_id', name='uq_draw_pile_game_card'),
    )
    op.create_index('ix_chronology_draw_pile_game_id', 'chronology_draw_pile', ['game_id'])

    op.create_table(
        'chronology_timeline',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('chronology_game.id'), nullable=False),
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
        sa.Column('card_id', sa.Integer(), sa.ForeignKey('card.id'), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('placed_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_timeline_game_player_position', 'chronology_timeline', ['game_id', 'player_id', 'position'])


def downgrade():
    op.drop_index('ix_timeline_game_player_position', table_name='chronology_timeline')
    op.drop_table('chronology_timeline')
    op.drop_index('ix_chronology_draw_pile_game_id', table_name='chronology_draw_pile')
    op.drop_table('chronology_draw_pile')
    op.drop_table('chronology_game')
    op.drop_index('ix_player_lobby_id', table_name='player')
    op.drop_table('player')
    op.drop_index('ix_lobby_name', table_name='lobby')
    op.drop_table('lobby')
    op.drop_index('ix_card_deck_id', table_name='card')
    op.drop_table('card')
    op.drop_index('ix_deck_name', table_name='deck')
    op.drop_table('deck')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
