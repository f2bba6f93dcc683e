from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tutor_scheduling.db import Base


class WeeklyTemplate(Base):
    __tablename__ = 'weekly_templates'
    __table_args__ = (
        Index('ix_weekly_templates_teacher_day', 'teacher_id', 'day_of_week'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    teacher_id: Mapped[str] = mapped_column(String(64), index=True)
    day_of_week: Mapped[int | None] = mapped_column(Integer, nullable=True)  # Sunday=0 ... Saturday=6
    start_time: Mapped[str] = mapped_column(String(8), default='')
    end_time: Mapped[str] = mapped_column(String(8), default='')
    slot_type: Mapped[str] = mapped_column(String(20), default='private')
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    is_fixed: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    reserved_for_student: Mapped[str | None] = mapped_column(String(120), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SlotInventory(Base):
    __tablename__ = 'slot_inventory'
    __table_args__ = (
        UniqueConstraint('natural_key', name='uq_slot_inventory_natural_key'),
        Index('ix_slot_inventory_teacher_date', 'teacher_id', 'slot_date'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    natural_key: Mapped[str] = mapped_column(String(120), index=True)
    teacher_id: Mapped[str] = mapped_column(String(64), index=True)
    slot_date: Mapped[date] = mapped_column(Date, index=True)
    start_time: Mapped[str] = mapped_column(String(8))
    end_time: Mapped[str] = mapped_column(String(8))
    status: Mapped[str] = mapped_column(String(40), default='פתוח')  # persisted form, see core.status_mapping
    created_from_template_id: Mapped[int | None] = mapped_column(ForeignKey('weekly_templates.id'), nullable=True, index=True)
    slot_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)
    is_block: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lesson_links: Mapped[list['SlotLessonLink']] = relationship(
        'SlotLessonLink',
        back_populates='slot',
        cascade='all, delete-orphan',
    )


class Lesson(Base):
    __tablename__ = 'lessons'
    __table_args__ = (
        Index('ix_lessons_teacher_date', 'teacher_id', 'lesson_date'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    teacher_id: Mapped[str] = mapped_column(String(64), index=True)
    lesson_date: Mapped[date] = mapped_column(Date, index=True)
    start_time: Mapped[str] = mapped_column(String(8))
    duration_minutes: Mapped[int] = mapped_column(Integer, default=60)
    status: Mapped[str] = mapped_column(String(40), default='מתוכנן')
    student_name: Mapped[str] = mapped_column(String(120), default='')
    created_from_template_id: Mapped[int | None] = mapped_column(ForeignKey('weekly_templates.id'), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class SlotLessonLink(Base):
    __tablename__ = 'slot_inventory_lessons'
    __table_args__ = (
        UniqueConstraint('slot_id', 'lesson_id', name='uq_slot_inventory_lessons_slot_lesson'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    slot_id: Mapped[int] = mapped_column(ForeignKey('slot_inventory.id'), index=True)
    lesson_id: Mapped[int] = mapped_column(ForeignKey('lessons.id'), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    slot: Mapped['SlotInventory'] = relationship('SlotInventory', back_populates='lesson_links')
