"""SQLAlchemy ORM models for the roster directory, schedules, and audit logs."""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for ORM models."""


# Directory -------------------------------------------------------------------


class ScheduledAreaModel(Base):
    __tablename__ = "scheduled_areas"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class PersonModel(Base):
    __tablename__ = "persons"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)


class PersonAreaModel(Base):
    """Associates a person with the scheduled areas they serve in."""

    __tablename__ = "person_areas"
    __table_args__ = (UniqueConstraint("person_id", "scheduled_area_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id: Mapped[str] = mapped_column(
        ForeignKey("persons.id", ondelete="CASCADE"), nullable=False
    )
    scheduled_area_id: Mapped[str] = mapped_column(
        ForeignKey("scheduled_areas.id", ondelete="CASCADE"), nullable=False
    )


class ResponsibilityModel(Base):
    __tablename__ = "responsibilities"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    scheduled_area_id: Mapped[str] = mapped_column(
        ForeignKey("scheduled_areas.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)


class AreaGroupModel(Base):
    __tablename__ = "area_groups"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    scheduled_area_id: Mapped[str] = mapped_column(
        ForeignKey("scheduled_areas.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class AreaGroupMemberModel(Base):
    __tablename__ = "area_group_members"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    group_id: Mapped[str] = mapped_column(
        ForeignKey("area_groups.id", ondelete="CASCADE"), nullable=False
    )
    person_id: Mapped[str] = mapped_column(
        ForeignKey("persons.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class AreaGroupMemberResponsibilityModel(Base):
    __tablename__ = "area_group_member_responsibilities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    member_id: Mapped[str] = mapped_column(
        ForeignKey("area_group_members.id", ondelete="CASCADE"), nullable=False
    )
    responsibility_id: Mapped[str] = mapped_column(
        ForeignKey("responsibilities.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class AreaTeamModel(Base):
    __tablename__ = "area_teams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    scheduled_area_id: Mapped[str] = mapped_column(
        ForeignKey("scheduled_areas.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class AreaTeamRoleModel(Base):
    __tablename__ = "area_team_roles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    team_id: Mapped[str] = mapped_column(
        ForeignKey("area_teams.id", ondelete="CASCADE"), nullable=False
    )
    responsibility_id: Mapped[str] = mapped_column(
        ForeignKey("responsibilities.id", ondelete="CASCADE"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class ScheduledAbsenceModel(Base):
    """A date range during which a person is unavailable."""

    __tablename__ = "scheduled_absences"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    person_id: Mapped[str] = mapped_column(
        ForeignKey("persons.id", ondelete="CASCADE"), nullable=False
    )
    start_date: Mapped[str] = mapped_column(String(16), nullable=False)
    end_date: Mapped[str] = mapped_column(String(16), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


# Schedules -------------------------------------------------------------------


class ScheduleGenerationModel(Base):
    __tablename__ = "schedule_generations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    scheduled_area_id: Mapped[str] = mapped_column(
        ForeignKey("scheduled_areas.id", ondelete="CASCADE"), nullable=False
    )
    generation_type: Mapped[str] = mapped_column(String(32), nullable=False)
    period_type: Mapped[str] = mapped_column(String(16), nullable=False)
    period_start_date: Mapped[str] = mapped_column(String(16), nullable=False)
    period_end_date: Mapped[str] = mapped_column(String(16), nullable=False)
    configuration_json: Mapped[str] = mapped_column(Text, nullable=False)
    total_schedules_generated: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    created_by: Mapped[str | None] = mapped_column(
        ForeignKey("persons.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[str] = mapped_column(String(64), nullable=False)


class ScheduleModel(Base):
    __tablename__ = "schedules"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    schedule_generation_id: Mapped[str | None] = mapped_column(
        ForeignKey("schedule_generations.id", ondelete="CASCADE"), nullable=True
    )
    scheduled_area_id: Mapped[str] = mapped_column(
        ForeignKey("scheduled_areas.id", ondelete="CASCADE"), nullable=False
    )
    start_datetime: Mapped[str] = mapped_column(String(64), nullable=False)
    end_datetime: Mapped[str] = mapped_column(String(64), nullable=False)
    schedule_type: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    created_at: Mapped[str] = mapped_column(String(64), nullable=False)
    updated_at: Mapped[str] = mapped_column(String(64), nullable=False)


class ScheduleGroupModel(Base):
    __tablename__ = "schedule_groups"
    __table_args__ = (UniqueConstraint("schedule_id", "group_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    schedule_id: Mapped[str] = mapped_column(
        ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False
    )
    group_id: Mapped[str] = mapped_column(
        ForeignKey("area_groups.id", ondelete="CASCADE"), nullable=False
    )


class ScheduleTeamModel(Base):
    __tablename__ = "schedule_teams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    schedule_id: Mapped[str] = mapped_column(
        ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    team_id: Mapped[str] = mapped_column(
        ForeignKey("area_teams.id", ondelete="CASCADE"), nullable=False
    )


class ScheduleTeamAssignmentModel(Base):
    __tablename__ = "schedule_team_assignments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    schedule_id: Mapped[str] = mapped_column(
        ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False
    )
    person_id: Mapped[str] = mapped_column(
        ForeignKey("persons.id", ondelete="CASCADE"), nullable=False
    )
    team_role_id: Mapped[str] = mapped_column(
        ForeignKey("area_team_roles.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[str] = mapped_column(String(64), nullable=False)


class ScheduleMemberModel(Base):
    __tablename__ = "schedule_members"
    __table_args__ = (UniqueConstraint("schedule_id", "person_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    schedule_id: Mapped[str] = mapped_column(
        ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False
    )
    person_id: Mapped[str] = mapped_column(
        ForeignKey("persons.id", ondelete="CASCADE"), nullable=False
    )
    responsibility_id: Mapped[str] = mapped_column(
        ForeignKey("responsibilities.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    present: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[str] = mapped_column(String(64), nullable=False)


class ScheduleLogModel(Base):
    """Append-only audit entries for schedule mutations."""

    __tablename__ = "schedule_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    schedule_id: Mapped[str] = mapped_column(
        ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False
    )
    schedule_member_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    person_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    change_type: Mapped[str] = mapped_column(String(64), nullable=False)
    old_value_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_by: Mapped[str | None] = mapped_column(
        ForeignKey("persons.id", ondelete="SET NULL"), nullable=True
    )
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(String(64), nullable=False)
