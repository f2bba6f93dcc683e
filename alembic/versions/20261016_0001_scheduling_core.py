"""scheduling core schema

Revision ID: 20261016_0001
Revises:
Create Date: 2026-10-16 09:00:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20261016_0001'
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(inspector: sa.Inspector, table_name: str) -> bool:
    return table_name in inspector.get_table_names()


def _index_exists(inspector: sa.Inspector, table_name: str, index_name: str) -> bool:
    if not _table_exists(inspector, table_name):
        return False
    return any(idx['name'] == index_name for idx in inspector.get_indexes(table_name))


def upgrade() -> None:
    inspector = sa.inspect(op.get_bind())
    if not _table_exists(inspector, 'weekly_templates'):
        op.create_table(
            'weekly_templates',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('teacher_id', sa.String(length=64), nullable=False),
            sa.Column('day_of_week', sa.Integer(), nullable=True),
            sa.Column('start_time', sa.String(length=8), nullable=False, server_default=''),
            sa.Column('end_time', sa.String(length=8), nullable=False, server_default=''),
            sa.Column('slot_type', sa.String(length=20), nullable=False, server_default='private'),
            sa.Column('duration_minutes', sa.Integer(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('is_fixed', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('reserved_for_student', sa.String(length=120), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.PrimaryKeyConstraint('id'),
        )

    inspector = sa.inspect(op.get_bind())
    if not _table_exists(inspector, 'lessons'):
        op.create_table(
            'lessons',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('teacher_id', sa.String(length=64), nullable=False),
            sa.Column('lesson_date', sa.Date(), nullable=False),
            sa.Column('start_time', sa.String(length=8), nullable=False),
            sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
            sa.Column('status', sa.String(length=40), nullable=False, server_default='מתוכנן'),
            sa.Column('student_name', sa.String(length=120), nullable=False, server_default=''),
            sa.Column('created_from_template_id', sa.Integer(), sa.ForeignKey('weekly_templates.id'), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.PrimaryKeyConstraint('id'),
        )

    inspector = sa.inspect(op.get_bind())
    if not _table_exists(inspector, 'slot_inventory'):
        op.create_table(
            'slot_inventory',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('natural_key', sa.String(length=120), nullable=False),
            sa.Column('teacher_id', sa.String(length=64), nullable=False),
            sa.Column('slot_date', sa.Date(), nullable=False),
            sa.Column('start_time', sa.String(length=8), nullable=False),
            sa.Column('end_time', sa.String(length=8), nullable=False),
            sa.Column('status', sa.String(length=40), nullable=False, server_default='פתוח'),
            sa.Column('created_from_template_id', sa.Integer(), sa.ForeignKey('weekly_templates.id'), nullable=True),
            sa.Column('slot_type', sa.String(length=20), nullable=True),
            sa.Column('is_locked', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('is_block', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('natural_key', name='uq_slot_inventory_natural_key'),
        )

    inspector = sa.inspect(op.get_bind())
    if not _table_exists(inspector, 'slot_inventory_lessons'):
        op.create_table(
            'slot_inventory_lessons',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('slot_id', sa.Integer(), sa.ForeignKey('slot_inventory.id'), nullable=False),
            sa.Column('lesson_id', sa.Integer(), sa.ForeignKey('lessons.id'), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('slot_id', 'lesson_id', name='uq_slot_inventory_lessons_slot_lesson'),
        )

    inspector = sa.inspect(op.get_bind())
    indexes = (
        ('weekly_templates', 'ix_weekly_templates_teacher_day', ['teacher_id', 'day_of_week']),
        ('weekly_templates', 'ix_weekly_templates_is_active', ['is_active']),
        ('lessons', 'ix_lessons_teacher_date', ['teacher_id', 'lesson_date']),
        ('slot_inventory', 'ix_slot_inventory_teacher_date', ['teacher_id', 'slot_date']),
        ('slot_inventory', 'ix_slot_inventory_created_from_template_id', ['created_from_template_id']),
        ('slot_inventory_lessons', 'ix_slot_inventory_lessons_lesson_id', ['lesson_id']),
    )
    for table_name, index_name, columns in indexes:
        if not _index_exists(inspector, table_name, index_name):
            op.create_index(index_name, table_name, columns)


def downgrade() -> None:
    inspector = sa.inspect(op.get_bind())
    for table_name in ('slot_inventory_lessons', 'slot_inventory', 'lessons', 'weekly_templates'):
        if _table_exists(inspector, table_name):
            op.drop_table(table_name)
