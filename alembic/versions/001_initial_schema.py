"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table('albums',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('name', sa.String(), nullable=False),
                    sa.Column('year', sa.Integer(), nullable=False),
                    sa.Column('description', sa.Text(), nullable=True),
                    sa.Column('is_active', sa.Boolean(), nullable=False),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.text('now()'), nullable=True),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_albums_id'), 'albums', ['id'], unique=False)
    op.create_index(op.f('ix_albums_name'), 'albums', ['name'], unique=False)

    op.create_table('postal_codes',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('code', sa.String(length=10), nullable=False),
                    sa.Column('latitude', sa.Float(), nullable=False),
                    sa.Column('longitude', sa.Float(), nullable=False),
                    sa.Column('place_name', sa.String(), nullable=True),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_postal_codes_id'),
                    'postal_codes', ['id'], unique=False)
    op.create_index(op.f('ix_postal_codes_code'),
                    'postal_codes', ['code'], unique=True)

    op.create_table('users',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('nickname', sa.String(), nullable=False),
                    sa.Column('email', sa.String(), nullable=True),
                    sa.Column('password_hash', sa.String(), nullable=False),
                    sa.Column('is_admin', sa.Boolean(), nullable=False),
                    sa.Column('postal_code', sa.String(
                        length=10), nullable=False),
                    sa.Column('radius_km', sa.Integer(), nullable=False),
                    sa.Column('selected_album_id', sa.Integer(), nullable=True),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.text('now()'), nullable=True),
                    sa.Column('updated_at', sa.DateTime(
                        timezone=True), nullable=True),
                    sa.ForeignKeyConstraint(['selected_album_id'], [
                                            'albums.id'], ondelete='SET NULL'),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_nickname'),
                    'users', ['nickname'], unique=True)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_postal_code'),
                    'users', ['postal_code'], unique=False)
    op.create_index(op.f('ix_users_selected_album_id'),
                    'users', ['selected_album_id'], unique=False)

    op.create_table('stickers',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('album_id', sa.Integer(), nullable=False),
                    sa.Column('number', sa.String(), nullable=False),
                    sa.Column('name', sa.String(), nullable=False),
                    sa.Column('team', sa.String(), nullable=True),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.text('now()'), nullable=True),
                    sa.ForeignKeyConstraint(['album_id'], [
                                            'albums.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('album_id', 'number',
                                        name='uq_sticker_album_number')
                    )
    op.create_index(op.f('ix_stickers_id'), 'stickers', ['id'], unique=False)
    op.create_index(op.f('ix_stickers_album_id'),
                    'stickers', ['album_id'], unique=False)

    op.create_table('user_stickers',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('user_id', sa.Integer(), nullable=False),
                    sa.Column('sticker_id', sa.Integer(), nullable=False),
                    sa.Column('owned', sa.Boolean(), nullable=False),
                    sa.Column('duplicate', sa.Boolean(), nullable=False),
                    sa.Column('updated_at', sa.DateTime(timezone=True),
                              server_default=sa.text('now()'), nullable=True),
                    sa.CheckConstraint('owned OR NOT duplicate',
                                       name='ck_user_sticker_duplicate_owned'),
                    sa.ForeignKeyConstraint(['sticker_id'], [
                                            'stickers.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['user_id'], [
                                            'users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('user_id', 'sticker_id',
                                        name='uq_user_sticker')
                    )
    op.create_index(op.f('ix_user_stickers_id'),
                    'user_stickers', ['id'], unique=False)
    op.create_index(op.f('ix_user_stickers_user_id'),
                    'user_stickers', ['user_id'], unique=False)
    op.create_index(op.f('ix_user_stickers_sticker_id'),
                    'user_stickers', ['sticker_id'], unique=False)

    op.create_table('matches',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('user1_id', sa.Integer(), nullable=False),
                    sa.Column('user2_id', sa.Integer(), nullable=False),
                    sa.Column('initiator_id', sa.Integer(), nullable=False),
                    sa.Column('album_id', sa.Integer(), nullable=False),
                    sa.Column('status', sa.String(), nullable=False),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.text('now()'), nullable=True),
                    sa.ForeignKeyConstraint(['album_id'], [
                                            'albums.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['user1_id'], [
                                            'users.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['user2_id'], [
                                            'users.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['initiator_id'], [
                                            'users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('album_id', 'user1_id', 'user2_id',
                                        name='uq_match_pair'),
                    sa.CheckConstraint('user1_id < user2_id',
                                       name='ck_match_pair_order')
                    )
    op.create_index(op.f('ix_matches_id'), 'matches', ['id'], unique=False)
    op.create_index(op.f('ix_matches_user1_id'),
                    'matches', ['user1_id'], unique=False)
    op.create_index(op.f('ix_matches_user2_id'),
                    'matches', ['user2_id'], unique=False)
    op.create_index(op.f('ix_matches_album_id'),
                    'matches', ['album_id'], unique=False)

    op.create_table('messages',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('match_id', sa.Integer(), nullable=False),
                    sa.Column('sender_id', sa.Integer(), nullable=False),
                    sa.Column('content', sa.Text(), nullable=False),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.text('now()'), nullable=True),
                    sa.ForeignKeyConstraint(['match_id'], [
                                            'matches.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['sender_id'], [
                                            'users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_messages_id'), 'messages', ['id'], unique=False)
    op.create_index(op.f('ix_messages_match_id'),
                    'messages', ['match_id'], unique=False)
    op.create_index(op.f('ix_messages_sender_id'),
                    'messages', ['sender_id'], unique=False)
    op.create_index(op.f('ix_messages_created_at'),
                    'messages', ['created_at'], unique=False)

    op.create_table('reports',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('reporter_id', sa.Integer(), nullable=False),
                    sa.Column('reported_user_id', sa.Integer(), nullable=True),
                    sa.Column('match_id', sa.Integer(), nullable=True),
                    sa.Column('type', sa.String(), nullable=False),
                    sa.Column('description', sa.Text(), nullable=False),
                    sa.Column('status', sa.String(), nullable=False),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.text('now()'), nullable=True),
                    sa.ForeignKeyConstraint(['match_id'], [
                                            'matches.id'], ondelete='SET NULL'),
                    sa.ForeignKeyConstraint(['reported_user_id'], [
                                            'users.id'], ondelete='SET NULL'),
                    sa.ForeignKeyConstraint(['reporter_id'], [
                                            'users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_reports_id'), 'reports', ['id'], unique=False)
    op.create_index(op.f('ix_reports_reporter_id'),
                    'reports', ['reporter_id'], unique=False)
    op.create_index(op.f('ix_reports_reported_user_id'),
                    'reports', ['reported_user_id'], unique=False)
    op.create_index(op.f('ix_reports_status'),
                    'reports', ['status'], unique=False)


def downgrade() -> None:
    op.drop_table('reports')
    op.drop_table('messages')
    op.drop_table('matches')
    op.drop_table('user_stickers')
    op.drop_table('stickers')
    op.drop_table('users')
    op.drop_table('postal_codes')
    op.drop_table('albums')
