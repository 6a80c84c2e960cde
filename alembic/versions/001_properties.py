"""Properties and audit log

Revision ID: 001_properties
Revises:
Create Date: 2026-10-16

Address is flattened into columns; amenities, policies and image
references are JSONB documents.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_properties'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_DOC = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')

PROPERTY_TYPES = ('APARTMENT', 'HOUSE', 'ROOM', 'HOTEL', 'CABIN', 'VILLA')
AUDIT_ACTIONS = ('CREATE', 'UPDATE', 'DELETE', 'ACTIVATE', 'DEACTIVATE')


def upgrade() -> None:
    # === PROPERTIES ===
    op.create_table(
        'properties',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=True, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('property_type', sa.Enum(*PROPERTY_TYPES, name='propertytype'), nullable=False, index=True),
        sa.Column('street', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True, index=True),
        sa.Column('state_province', sa.String(100), nullable=True),
        sa.Column('postal_code', sa.String(20), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('accommodates', sa.Integer(), nullable=False),
        sa.Column('bedrooms', sa.Integer(), nullable=False),
        sa.Column('beds', sa.Integer(), nullable=False),
        sa.Column('bathrooms', sa.Float(), nullable=False),
        sa.Column('amenities', JSON_DOC, nullable=False),
        sa.Column('policies', JSON_DOC, nullable=False),
        sa.Column('images', JSON_DOC, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(), nullable=True, index=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('deactivated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('accommodates >= 1', name='ck_property_accommodates'),
        sa.CheckConstraint('bedrooms >= 0 AND beds >= 0 AND bathrooms >= 0', name='ck_property_capacity'),
    )

    # === AUDIT LOG ===
    op.create_table(
        'audit_log',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('action', sa.Enum(*AUDIT_ACTIONS, name='auditaction'), nullable=False, index=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(36), nullable=False),
        sa.Column('property_id', sa.String(36), nullable=True, index=True),
        sa.Column('user_id', sa.String(64), nullable=True, index=True),
        sa.Column('details', JSON_DOC, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('audit_log')
    op.drop_table('properties')
    sa.Enum(name='auditaction').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='propertytype').drop(op.get_bind(), checkfirst=True)
