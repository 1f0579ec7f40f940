"""Band Stage - SQLAlchemy ORM models.

Equipment data model tables:
1. band_members
2. microphones
3. instruments
4. amplifiers
5. pa_equipment

A microphone attaches to gear through its assignment (instrument or
amplifier) and, independently, to a vocalist through
BandMember.vocal_mic_id. Both attachment mechanisms are read by the
resolvers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


# --- Enumerations ---


class Routing(StrEnum):
    """How an instrument or amplifier reaches the console."""

    MIC = "mic"
    DIRECT_INJECTION = "di"
    MULTI = "multi"


class MonoStereo(StrEnum):
    """Channel width."""

    MONO = "mono"
    STEREO = "stereo"


class TargetKind(StrEnum):
    """Kinds of gear a microphone can be placed on."""

    INSTRUMENT = "instrument"
    AMPLIFIER = "amplifier"


DIRECT_ROUTINGS = frozenset({Routing.DIRECT_INJECTION, Routing.MULTI})


# --- Microphone assignment variant ---


@dataclass(frozen=True)
class Unassigned:
    """Microphone not placed on any instrument or amplifier."""


@dataclass(frozen=True)
class AssignedTo:
    """Microphone placed on exactly one instrument or amplifier."""

    target_kind: TargetKind
    target_id: str


MicAssignment = Unassigned | AssignedTo

UNASSIGNED = Unassigned()


# --- Tables ---


class BandMember(Base):
    """A band member and their (optional) vocal microphone."""

    __tablename__ = "band_members"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Role tags, e.g. ["vocalist", "guitarist"]
    roles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    stage_position: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Vocal mic lives on the member, not in the microphone assignment
    vocal_mic_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("microphones.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Manual ordering
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    def has_role(self, role: str) -> bool:
        return role in (self.roles or [])


class Microphone(Base):
    """A microphone in the band's inventory.

    Assignment is stored as (assigned_to_type, assigned_to_id). Both are NULL
    or both are set; use the ``assignment`` property and ``assign_to`` /
    ``unassign`` instead of touching the columns.
    """

    __tablename__ = "microphones"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(128), nullable=True)
    model: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # dynamic / condenser / ribbon
    mic_type: Mapped[str] = mapped_column(String(32), nullable=False)
    polar_pattern: Mapped[str | None] = mapped_column(String(32), nullable=True)
    phantom_power: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mono_stereo: Mapped[str] = mapped_column(String(8), nullable=False, default=MonoStereo.MONO)
    usage: Mapped[str | None] = mapped_column(String(64), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    assigned_to_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    assigned_to_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint(
            "(assigned_to_type IS NULL AND assigned_to_id IS NULL) OR "
            "(assigned_to_type IN ('instrument', 'amplifier') AND assigned_to_id IS NOT NULL)",
            name="ck_mic_assignment_tagged",
        ),
        Index("ix_mic_assignment", "assigned_to_type", "assigned_to_id"),
    )

    @property
    def assignment(self) -> MicAssignment:
        if self.assigned_to_type is None or self.assigned_to_id is None:
            return UNASSIGNED
        return AssignedTo(TargetKind(self.assigned_to_type), self.assigned_to_id)

    def assign_to(self, target_kind: TargetKind, target_id: str) -> None:
        self.assigned_to_type = TargetKind(target_kind).value
        self.assigned_to_id = target_id

    def unassign(self) -> None:
        self.assigned_to_type = None
        self.assigned_to_id = None


class Instrument(Base):
    """An instrument, optionally feeding an amplifier."""

    __tablename__ = "instruments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    member_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("band_members.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Open vocabulary: drums / bass / guitar / keyboard / other
    instrument_type: Mapped[str] = mapped_column(String(32), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(128), nullable=True)
    model: Mapped[str | None] = mapped_column(String(128), nullable=True)

    routing: Mapped[str] = mapped_column(
        String(16), nullable=False, default=Routing.DIRECT_INJECTION
    )
    mono_stereo: Mapped[str] = mapped_column(String(8), nullable=False, default=MonoStereo.MONO)

    # Manual tie-break within a type
    channel_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Amplifier this instrument feeds (exclusive per amplifier)
    amp_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("amplifiers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("routing IN ('mic', 'di', 'multi')", name="ck_instrument_routing"),
    )


class Amplifier(Base):
    """A guitar/bass/keyboard amplifier on stage."""

    __tablename__ = "amplifiers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    member_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("band_members.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amp_type: Mapped[str] = mapped_column(String(32), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(128), nullable=True)
    model: Mapped[str | None] = mapped_column(String(128), nullable=True)
    wattage: Mapped[int | None] = mapped_column(Integer, nullable=True)

    routing: Mapped[str] = mapped_column(
        String(16), nullable=False, default=Routing.DIRECT_INJECTION
    )
    mono_stereo: Mapped[str] = mapped_column(String(8), nullable=False, default=MonoStereo.MONO)
    stage_position: Mapped[str | None] = mapped_column(String(32), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Cabinet / speaker description
    cabinet_brand: Mapped[str | None] = mapped_column(String(128), nullable=True)
    speaker_brand: Mapped[str | None] = mapped_column(String(128), nullable=True)
    speaker_model: Mapped[str | None] = mapped_column(String(128), nullable=True)
    speaker_config: Mapped[str | None] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("routing IN ('mic', 'di', 'multi')", name="ck_amplifier_routing"),
    )


class PaEquipment(Base):
    """Front-of-house inventory. Not read by the channel list resolver."""

    __tablename__ = "pa_equipment"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # console / main-speaker / subwoofer / monitor / di-box / power-amp / other
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(128), nullable=True)
    model: Mapped[str | None] = mapped_column(String(128), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    channels: Mapped[int | None] = mapped_column(Integer, nullable=True)
    aux_sends: Mapped[int | None] = mapped_column(Integer, nullable=True)
    wattage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    monitor_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    iem_wireless: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )
