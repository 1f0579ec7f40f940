"""Band Stage - Equipment service logic.

Record-level CRUD for members, microphones, instruments, amplifiers and PA
gear, plus the routing mutators that keep the resolver's invariants:

- a microphone is placed on at most one instrument or amplifier
- an amplifier is fed by at most one instrument
- deleting gear or people releases every reference to it

Every operation runs as one store transaction. Validation happens before
the first write and any exception rolls the transaction back, so callers
never observe a partial mutation.
"""

from __future__ import annotations

import logging
import uuid
from enum import StrEnum
from typing import TypeVar

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from bandstage.models import (
    Amplifier,
    AssignedTo,
    BandMember,
    Base,
    Instrument,
    Microphone,
    PaEquipment,
    Routing,
    TargetKind,
)
from bandstage.schemas import (
    AmplifierPayload,
    AmplifierResponse,
    AmpLinkResponse,
    InstrumentPayload,
    InstrumentResponse,
    MemberPayload,
    MemberResponse,
    MicAssignmentResponse,
    MicrophonePayload,
    MicrophoneResponse,
    PaPayload,
    PaResponse,
)
from bandstage.store import EquipmentStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


# --- Error Codes ---


class EquipmentErrorCode(StrEnum):
    """Error codes for equipment operations."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_REFERENCE = "INVALID_REFERENCE"


class EquipmentError(Exception):
    """Base exception for equipment errors."""

    def __init__(self, error_code: str, message: str):
        self.error_code = error_code
        self.message = message
        super().__init__(f"{error_code}: {message}")


class NotFoundError(EquipmentError):
    """The record an operation targets does not exist."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(EquipmentErrorCode.NOT_FOUND, f"{kind} not found: {entity_id}")


class InvalidReferenceError(EquipmentError):
    """A payload names a record to link or assign that does not exist."""

    def __init__(self, field: str, kind: str, entity_id: str):
        self.field = field
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(
            EquipmentErrorCode.INVALID_REFERENCE,
            f"{field} references unknown {kind}: {entity_id}",
        )


_KIND_LABELS: dict[type, str] = {
    BandMember: "member",
    Microphone: "microphone",
    Instrument: "instrument",
    Amplifier: "amplifier",
    PaEquipment: "pa_equipment",
}

_TARGET_MODELS: dict[TargetKind, type] = {
    TargetKind.INSTRUMENT: Instrument,
    TargetKind.AMPLIFIER: Amplifier,
}


def generate_id() -> str:
    """Generate a unique entity ID.

    Uses UUID4 for uniqueness. Format: uuid4 hex (32 chars).
    """
    return uuid.uuid4().hex


# --- Internal Helpers ---


def _get_or_raise(session: Session, model: type[ModelT], entity_id: str) -> ModelT:
    """Load a row by primary key or raise NotFoundError."""
    obj = session.get(model, entity_id)
    if obj is None:
        raise NotFoundError(_KIND_LABELS[model], entity_id)
    return obj


def _check_reference(
    session: Session,
    model: type,
    entity_id: str | None,
    field: str,
) -> None:
    """Raise InvalidReferenceError if a non-null reference does not resolve."""
    if entity_id is None:
        return
    if session.get(model, entity_id) is None:
        raise InvalidReferenceError(field, _KIND_LABELS[model], entity_id)


def _release_mics_on(session: Session, target_kind: TargetKind, target_id: str) -> list[str]:
    """Unassign every microphone placed on a target.

    Returns:
        Ids of the released microphones, sorted.
    """
    stmt = select(Microphone).where(
        Microphone.assigned_to_type == target_kind.value,
        Microphone.assigned_to_id == target_id,
    )
    released = []
    for mic in session.scalars(stmt):
        mic.unassign()
        released.append(mic.id)
    session.flush()
    return sorted(released)


def _unlink_instruments_from(session: Session, amp_id: str, keep: str | None = None) -> list[str]:
    """Detach every instrument feeding an amplifier and set it back to DI.

    Args:
        session: Active database session.
        amp_id: Amplifier id.
        keep: Optional instrument id to leave out of the returned list (the
            instrument about to be relinked).

    Returns:
        Ids of the instruments that lost their link, sorted.
    """
    stmt = select(Instrument).where(Instrument.amp_id == amp_id)
    unlinked = []
    for instrument in session.scalars(stmt):
        instrument.amp_id = None
        instrument.routing = Routing.DIRECT_INJECTION.value
        if instrument.id != keep:
            unlinked.append(instrument.id)
    session.flush()
    return sorted(unlinked)


# --- Band Members ---


def list_members(store: EquipmentStore) -> list[MemberResponse]:
    """All members ordered by sort_order, then name."""
    with store.transaction() as session:
        stmt = select(BandMember).order_by(BandMember.sort_order, BandMember.name, BandMember.id)
        return [MemberResponse.model_validate(m) for m in session.scalars(stmt)]


def get_member(store: EquipmentStore, member_id: str) -> MemberResponse:
    with store.transaction() as session:
        return MemberResponse.model_validate(_get_or_raise(session, BandMember, member_id))


def create_member(store: EquipmentStore, payload: MemberPayload) -> MemberResponse:
    """Create a band member.

    Raises:
        InvalidReferenceError: If vocal_mic_id names an unknown microphone.
    """
    with store.transaction() as session:
        _check_reference(session, Microphone, payload.vocal_mic_id, "vocal_mic_id")
        member = BandMember(id=generate_id(), **payload.model_dump())
        session.add(member)
        session.flush()
        logger.debug("Created member %s (%s)", member.id, member.name)
        return MemberResponse.model_validate(member)


def update_member(store: EquipmentStore, member_id: str, payload: MemberPayload) -> MemberResponse:
    """Replace a member's editable fields.

    Raises:
        NotFoundError: If the member does not exist.
        InvalidReferenceError: If vocal_mic_id names an unknown microphone.
    """
    with store.transaction() as session:
        member = _get_or_raise(session, BandMember, member_id)
        _check_reference(session, Microphone, payload.vocal_mic_id, "vocal_mic_id")
        for field, value in payload.model_dump().items():
            setattr(member, field, value)
        session.flush()
        logger.debug("Updated member %s", member_id)
        return MemberResponse.model_validate(member)


def set_member_vocal_mic(
    store: EquipmentStore,
    member_id: str,
    mic_id: str | None,
) -> MemberResponse:
    """Set or clear the microphone a member sings into.

    Independent of the microphone's instrument/amplifier assignment.

    Raises:
        NotFoundError: If the member does not exist.
        InvalidReferenceError: If mic_id names an unknown microphone.
    """
    with store.transaction() as session:
        member = _get_or_raise(session, BandMember, member_id)
        _check_reference(session, Microphone, mic_id, "mic_id")
        member.vocal_mic_id = mic_id
        session.flush()
        logger.info("Member %s vocal mic set to %s", member_id, mic_id)
        return MemberResponse.model_validate(member)


def delete_member(store: EquipmentStore, member_id: str) -> None:
    """Delete a member; their instruments and amplifiers become unowned.

    Raises:
        NotFoundError: If the member does not exist.
    """
    with store.transaction() as session:
        member = _get_or_raise(session, BandMember, member_id)
        session.execute(
            update(Instrument).where(Instrument.member_id == member_id).values(member_id=None)
        )
        session.execute(
            update(Amplifier).where(Amplifier.member_id == member_id).values(member_id=None)
        )
        session.delete(member)
        logger.info("Deleted member %s", member_id)


# --- Microphones ---


def list_microphones(store: EquipmentStore) -> list[MicrophoneResponse]:
    """All microphones ordered by name."""
    with store.transaction() as session:
        stmt = select(Microphone).order_by(Microphone.name, Microphone.id)
        return [MicrophoneResponse.model_validate(m) for m in session.scalars(stmt)]


def get_microphone(store: EquipmentStore, mic_id: str) -> MicrophoneResponse:
    with store.transaction() as session:
        return MicrophoneResponse.model_validate(_get_or_raise(session, Microphone, mic_id))


def create_microphone(store: EquipmentStore, payload: MicrophonePayload) -> MicrophoneResponse:
    """Create an unassigned microphone."""
    with store.transaction() as session:
        mic = Microphone(id=generate_id(), **payload.model_dump(mode="json"))
        session.add(mic)
        session.flush()
        logger.debug("Created microphone %s (%s)", mic.id, mic.name)
        return MicrophoneResponse.model_validate(mic)


def update_microphone(
    store: EquipmentStore,
    mic_id: str,
    payload: MicrophonePayload,
) -> MicrophoneResponse:
    """Replace a microphone's descriptive fields. Assignment is untouched.

    Raises:
        NotFoundError: If the microphone does not exist.
    """
    with store.transaction() as session:
        mic = _get_or_raise(session, Microphone, mic_id)
        for field, value in payload.model_dump(mode="json").items():
            setattr(mic, field, value)
        session.flush()
        logger.debug("Updated microphone %s", mic_id)
        return MicrophoneResponse.model_validate(mic)


def delete_microphone(store: EquipmentStore, mic_id: str) -> None:
    """Delete a microphone and clear it from every member's vocal slot.

    Raises:
        NotFoundError: If the microphone does not exist.
    """
    with store.transaction() as session:
        mic = _get_or_raise(session, Microphone, mic_id)
        session.execute(
            update(BandMember).where(BandMember.vocal_mic_id == mic_id).values(vocal_mic_id=None)
        )
        session.delete(mic)
        logger.info("Deleted microphone %s", mic_id)


# --- Instruments ---


def list_instruments(store: EquipmentStore) -> list[InstrumentResponse]:
    """All instruments ordered by channel_order, then name."""
    with store.transaction() as session:
        stmt = select(Instrument).order_by(
            Instrument.channel_order, Instrument.name, Instrument.id
        )
        return [InstrumentResponse.model_validate(i) for i in session.scalars(stmt)]


def get_instrument(store: EquipmentStore, instrument_id: str) -> InstrumentResponse:
    with store.transaction() as session:
        return InstrumentResponse.model_validate(
            _get_or_raise(session, Instrument, instrument_id)
        )


def create_instrument(store: EquipmentStore, payload: InstrumentPayload) -> InstrumentResponse:
    """Create an instrument (not linked to any amplifier).

    Raises:
        InvalidReferenceError: If member_id names an unknown member.
    """
    with store.transaction() as session:
        _check_reference(session, BandMember, payload.member_id, "member_id")
        instrument = Instrument(id=generate_id(), **payload.model_dump(mode="json"))
        session.add(instrument)
        session.flush()
        logger.debug("Created instrument %s (%s)", instrument.id, instrument.name)
        return InstrumentResponse.model_validate(instrument)


def update_instrument(
    store: EquipmentStore,
    instrument_id: str,
    payload: InstrumentPayload,
) -> InstrumentResponse:
    """Replace an instrument's editable fields.

    An instrument whose routing changes away from "mic" stops feeding its
    amplifier.

    Raises:
        NotFoundError: If the instrument does not exist.
        InvalidReferenceError: If member_id names an unknown member.
    """
    with store.transaction() as session:
        instrument = _get_or_raise(session, Instrument, instrument_id)
        _check_reference(session, BandMember, payload.member_id, "member_id")
        for field, value in payload.model_dump(mode="json").items():
            setattr(instrument, field, value)
        if instrument.amp_id is not None and payload.routing != Routing.MIC:
            logger.info(
                "Instrument %s routed %s, unlinking from amplifier %s",
                instrument_id,
                payload.routing,
                instrument.amp_id,
            )
            instrument.amp_id = None
        session.flush()
        logger.debug("Updated instrument %s", instrument_id)
        return InstrumentResponse.model_validate(instrument)


def delete_instrument(store: EquipmentStore, instrument_id: str) -> None:
    """Delete an instrument and release the microphones placed on it.

    Raises:
        NotFoundError: If the instrument does not exist.
    """
    with store.transaction() as session:
        instrument = _get_or_raise(session, Instrument, instrument_id)
        released = _release_mics_on(session, TargetKind.INSTRUMENT, instrument_id)
        session.delete(instrument)
        logger.info("Deleted instrument %s (released mics: %s)", instrument_id, released)


# --- Amplifiers ---


def list_amplifiers(store: EquipmentStore) -> list[AmplifierResponse]:
    """All amplifiers ordered by name."""
    with store.transaction() as session:
        stmt = select(Amplifier).order_by(Amplifier.name, Amplifier.id)
        return [AmplifierResponse.model_validate(a) for a in session.scalars(stmt)]


def get_amplifier(store: EquipmentStore, amp_id: str) -> AmplifierResponse:
    with store.transaction() as session:
        return AmplifierResponse.model_validate(_get_or_raise(session, Amplifier, amp_id))


def create_amplifier(store: EquipmentStore, payload: AmplifierPayload) -> AmplifierResponse:
    """Create an amplifier.

    Raises:
        InvalidReferenceError: If member_id names an unknown member.
    """
    with store.transaction() as session:
        _check_reference(session, BandMember, payload.member_id, "member_id")
        amplifier = Amplifier(id=generate_id(), **payload.model_dump(mode="json"))
        session.add(amplifier)
        session.flush()
        logger.debug("Created amplifier %s (%s)", amplifier.id, amplifier.name)
        return AmplifierResponse.model_validate(amplifier)


def update_amplifier(
    store: EquipmentStore,
    amp_id: str,
    payload: AmplifierPayload,
) -> AmplifierResponse:
    """Replace an amplifier's editable fields.

    Raises:
        NotFoundError: If the amplifier does not exist.
        InvalidReferenceError: If member_id names an unknown member.
    """
    with store.transaction() as session:
        amplifier = _get_or_raise(session, Amplifier, amp_id)
        _check_reference(session, BandMember, payload.member_id, "member_id")
        for field, value in payload.model_dump(mode="json").items():
            setattr(amplifier, field, value)
        session.flush()
        logger.debug("Updated amplifier %s", amp_id)
        return AmplifierResponse.model_validate(amplifier)


def delete_amplifier(store: EquipmentStore, amp_id: str) -> None:
    """Delete an amplifier.

    Releases the microphones placed on it and sets the instrument that fed
    it back to DI.

    Raises:
        NotFoundError: If the amplifier does not exist.
    """
    with store.transaction() as session:
        amplifier = _get_or_raise(session, Amplifier, amp_id)
        released = _release_mics_on(session, TargetKind.AMPLIFIER, amp_id)
        unlinked = _unlink_instruments_from(session, amp_id)
        session.delete(amplifier)
        logger.info(
            "Deleted amplifier %s (released mics: %s, unlinked instruments: %s)",
            amp_id,
            released,
            unlinked,
        )


# --- PA Equipment ---


def list_pa_equipment(store: EquipmentStore) -> list[PaResponse]:
    """All PA gear ordered by category, then name."""
    with store.transaction() as session:
        stmt = select(PaEquipment).order_by(PaEquipment.category, PaEquipment.name, PaEquipment.id)
        return [PaResponse.model_validate(p) for p in session.scalars(stmt)]


def create_pa_equipment(store: EquipmentStore, payload: PaPayload) -> PaResponse:
    with store.transaction() as session:
        item = PaEquipment(id=generate_id(), **payload.model_dump())
        session.add(item)
        session.flush()
        logger.debug("Created PA item %s (%s)", item.id, item.name)
        return PaResponse.model_validate(item)


def update_pa_equipment(store: EquipmentStore, item_id: str, payload: PaPayload) -> PaResponse:
    """Replace a PA item's fields.

    Raises:
        NotFoundError: If the item does not exist.
    """
    with store.transaction() as session:
        item = _get_or_raise(session, PaEquipment, item_id)
        for field, value in payload.model_dump().items():
            setattr(item, field, value)
        session.flush()
        return PaResponse.model_validate(item)


def delete_pa_equipment(store: EquipmentStore, item_id: str) -> None:
    with store.transaction() as session:
        session.delete(_get_or_raise(session, PaEquipment, item_id))
        logger.info("Deleted PA item %s", item_id)


# --- Routing Mutators ---


def set_instrument_amp_link(
    store: EquipmentStore,
    amp_id: str,
    instrument_id: str | None,
) -> AmpLinkResponse:
    """Make one instrument (or none) feed an amplifier.

    An amplifier is fed by at most one instrument. Any instrument currently
    linked to the amplifier is detached and set back to DI routing before
    the new instrument is linked and set to amp-routed ("mic": its signal
    reaches the console through the amplifier).

    Args:
        store: Equipment store.
        amp_id: Amplifier to link.
        instrument_id: Instrument that should feed it, or None to unlink.

    Returns:
        AmpLinkResponse with the linked instrument and the ones detached.

    Raises:
        NotFoundError: If the amplifier does not exist.
        InvalidReferenceError: If instrument_id names an unknown instrument.
    """
    with store.transaction() as session:
        _get_or_raise(session, Amplifier, amp_id)
        instrument = None
        if instrument_id is not None:
            instrument = session.get(Instrument, instrument_id)
            if instrument is None:
                raise InvalidReferenceError("instrument_id", "instrument", instrument_id)

        unlinked = _unlink_instruments_from(session, amp_id, keep=instrument_id)

        if instrument is not None:
            instrument.amp_id = amp_id
            instrument.routing = Routing.MIC.value
            session.flush()

        logger.info(
            "Amplifier %s linked to instrument %s (unlinked: %s)", amp_id, instrument_id, unlinked
        )
        return AmpLinkResponse(
            amp_id=amp_id,
            instrument_id=instrument_id,
            unlinked_instrument_ids=unlinked,
        )


def set_microphone_assignments(
    store: EquipmentStore,
    target_kind: TargetKind | str,
    target_id: str,
    mic_ids: list[str],
) -> MicAssignmentResponse:
    """Replace the set of microphones placed on an instrument or amplifier.

    Every microphone currently on the target is released first; each listed
    microphone is then attached, leaving wherever it was before. An empty
    list simply clears the target.

    Args:
        store: Equipment store.
        target_kind: "instrument" or "amplifier".
        target_id: Id of the target.
        mic_ids: Microphones to attach. Duplicates are collapsed.

    Returns:
        MicAssignmentResponse with the attached and released microphone ids.

    Raises:
        NotFoundError: If the target does not exist.
        InvalidReferenceError: If any mic id is unknown (nothing is written).
    """
    kind = TargetKind(target_kind)
    wanted = list(dict.fromkeys(mic_ids))

    with store.transaction() as session:
        _get_or_raise(session, _TARGET_MODELS[kind], target_id)
        mics = []
        for mic_id in wanted:
            mic = session.get(Microphone, mic_id)
            if mic is None:
                raise InvalidReferenceError("mic_ids", "microphone", mic_id)
            mics.append(mic)

        released = _release_mics_on(session, kind, target_id)

        target = AssignedTo(kind, target_id)
        for mic in mics:
            previous = mic.assignment
            if previous != target and isinstance(previous, AssignedTo):
                logger.info(
                    "Microphone %s moved from %s %s",
                    mic.id,
                    previous.target_kind,
                    previous.target_id,
                )
            mic.assign_to(kind, target_id)
        session.flush()

        logger.info("%s %s microphones set to %s", kind.value, target_id, wanted)
        return MicAssignmentResponse(
            target_kind=kind,
            target_id=target_id,
            mic_ids=wanted,
            released_mic_ids=[m for m in released if m not in wanted],
        )
