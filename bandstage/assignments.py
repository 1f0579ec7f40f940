"""Band Stage - Assignment resolver.

Answers "is this microphone in use, and where" and "does this piece of gear
reach the console through a microphone or directly".

Two independent attachment mechanisms are scanned:
- the microphone's own assignment (instrument or amplifier)
- BandMember.vocal_mic_id (vocalist)

Pure reads over an EquipmentSnapshot. Unresolvable references are never an
error; they resolve to "unbound".
"""

from __future__ import annotations

from dataclasses import dataclass

from bandstage.models import (
    DIRECT_ROUTINGS,
    Amplifier,
    AssignedTo,
    BandMember,
    Instrument,
    Microphone,
    Routing,
    TargetKind,
)
from bandstage.store import EquipmentSnapshot

# --- Binding variants ---


@dataclass(frozen=True)
class Unbound:
    """Microphone not feeding any channel."""


@dataclass(frozen=True)
class BoundToInstrument:
    instrument_id: str


@dataclass(frozen=True)
class BoundToAmplifier:
    amplifier_id: str


@dataclass(frozen=True)
class BoundToVocalist:
    member_id: str


MicBinding = Unbound | BoundToInstrument | BoundToAmplifier | BoundToVocalist

UNBOUND = Unbound()


# --- Routing classification ---


def is_mic_fed(equipment: Instrument | Amplifier) -> bool:
    """True if the gear expects a microphone to pick it up."""
    return equipment.routing == Routing.MIC


def is_direct(equipment: Instrument | Amplifier) -> bool:
    """True if the gear goes to the console through a DI or multi box."""
    return equipment.routing in DIRECT_ROUTINGS


# --- Gear bindings ---


def gear_binding(snapshot: EquipmentSnapshot, mic: Microphone) -> MicBinding:
    """Resolve a microphone's assignment against the snapshot.

    Returns Unbound when the microphone is unassigned or its target no
    longer exists.
    """
    assignment = mic.assignment
    if not isinstance(assignment, AssignedTo):
        return UNBOUND
    if assignment.target_kind == TargetKind.INSTRUMENT:
        if snapshot.instrument(assignment.target_id) is not None:
            return BoundToInstrument(assignment.target_id)
    elif assignment.target_kind == TargetKind.AMPLIFIER:
        if snapshot.amplifier(assignment.target_id) is not None:
            return BoundToAmplifier(assignment.target_id)
    return UNBOUND


def mics_bound_to(
    snapshot: EquipmentSnapshot,
    target_kind: TargetKind,
    target_id: str,
) -> list[Microphone]:
    """Microphones currently attached to one instrument or amplifier.

    Args:
        snapshot: Equipment snapshot.
        target_kind: Kind of gear.
        target_id: Id of the instrument or amplifier.

    Returns:
        Microphones ordered by name, then id.
    """
    wanted = AssignedTo(TargetKind(target_kind), target_id)
    mics = [m for m in snapshot.microphones if m.assignment == wanted]
    return sorted(mics, key=lambda m: (m.name, m.id))


# --- Vocal bindings ---


def member_order_key(member: BandMember) -> tuple:
    return (member.sort_order or 0, member.name, member.id)


def vocal_bindings(snapshot: EquipmentSnapshot) -> list[tuple[BandMember, Microphone]]:
    """Every (member, vocal microphone) pair whose microphone exists.

    Members whose vocal_mic_id is dangling are skipped. Returned in member
    order (sort_order, name, id); vocalist-first ordering is applied by the
    channel list resolver.
    """
    pairs = []
    for member in sorted(snapshot.members, key=member_order_key):
        mic = snapshot.microphone(member.vocal_mic_id)
        if mic is not None:
            pairs.append((member, mic))
    return pairs


# --- Full classification ---


def resolve_assignments(snapshot: EquipmentSnapshot) -> dict[str, MicBinding]:
    """Classify every microphone in the snapshot.

    A microphone placed on an existing instrument or amplifier reports that
    target. Otherwise, if some member uses it as a vocal mic, it reports the
    first such member in member order. Otherwise it is Unbound.

    Args:
        snapshot: Equipment snapshot.

    Returns:
        Mapping of microphone id to its binding, ordered by microphone id.
    """
    vocalist_by_mic: dict[str, str] = {}
    for member, mic in vocal_bindings(snapshot):
        vocalist_by_mic.setdefault(mic.id, member.id)

    bindings: dict[str, MicBinding] = {}
    for mic in snapshot.microphones:
        binding = gear_binding(snapshot, mic)
        if isinstance(binding, Unbound) and mic.id in vocalist_by_mic:
            binding = BoundToVocalist(vocalist_by_mic[mic.id])
        bindings[mic.id] = binding
    return bindings
