"""Band Stage - Stage channel list resolver.

Derives the ordered console input list from the equipment snapshot.
The list is built by five independent stages, concatenated in a fixed
order, and numbered only at the end:

1. drum microphones
2. non-drum instruments (direct-fed, plus any mic placed on them)
3. amplifier microphones
4. direct-fed amplifiers with no microphone
5. vocals

Each stage is a pure function of an EquipmentSnapshot. Every sort key ends
in entity ids, so the output is identical for an unchanged snapshot.
Missing joins (no member on an amp, a dangling reference) narrow or drop
entries; they never raise.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass, replace
from typing import Any

from bandstage.assignments import (
    BoundToAmplifier,
    BoundToInstrument,
    gear_binding,
    is_direct,
    mics_bound_to,
    vocal_bindings,
)
from bandstage.config import (
    AMP_DIRECT_PREFIX,
    CHANNEL_LIST_SCHEMA_ID,
    CHANNEL_LIST_VERSION,
    DEFAULT_TYPE_PRIORITY,
    DI_PLACEHOLDER_MODEL,
    DRUMS_TYPE,
    INSTRUMENT_TYPE_PRIORITY,
    MIC_TARGET_SEPARATOR,
    VOCAL_PREFIX,
    VOCALIST_ROLE,
)
from bandstage.models import (
    Amplifier,
    BandMember,
    Instrument,
    Microphone,
    MonoStereo,
    TargetKind,
)
from bandstage.store import EquipmentSnapshot, EquipmentStore
from bandstage.utils.hashing import sha256_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelEntry:
    """One console input channel.

    channel_number is 0 until number_channels() runs.
    """

    channel_number: int
    name: str
    mono_stereo: str
    phantom_power: bool
    mic_model: str | None = None
    mic_type: str | None = None
    polar_pattern: str | None = None
    notes: str | None = None
    member_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# --- Entry builders ---


def describe_mic_model(mic: Microphone) -> str | None:
    """Brand and model joined by a space, or None when both are absent."""
    parts = [p for p in (mic.brand, mic.model) if p]
    return " ".join(parts) if parts else None


def channel_width(mono_stereo: str | None) -> str:
    """Normalize a stored mono/stereo flag; anything unrecognized is mono."""
    if mono_stereo == MonoStereo.STEREO:
        return MonoStereo.STEREO.value
    return MonoStereo.MONO.value


def _mic_entry(mic: Microphone, name: str, member_id: str | None) -> ChannelEntry:
    return ChannelEntry(
        channel_number=0,
        name=name,
        mono_stereo=MonoStereo.MONO.value,
        phantom_power=bool(mic.phantom_power),
        mic_model=describe_mic_model(mic),
        mic_type=mic.mic_type,
        polar_pattern=mic.polar_pattern,
        member_id=member_id,
    )


def _direct_entry(name: str, mono_stereo: str, member_id: str | None) -> ChannelEntry:
    return ChannelEntry(
        channel_number=0,
        name=name,
        mono_stereo=channel_width(mono_stereo),
        phantom_power=False,
        mic_model=DI_PLACEHOLDER_MODEL,
        member_id=member_id,
    )


def _member_ref(snapshot: EquipmentSnapshot, member_id: str | None) -> str | None:
    member = snapshot.member(member_id)
    return member.id if member is not None else None


def _gear_mics(
    snapshot: EquipmentSnapshot,
) -> tuple[list[tuple[Instrument, Microphone]], list[tuple[Amplifier, Microphone]]]:
    """Split bound microphones into (instrument, mic) and (amplifier, mic) pairs."""
    on_instruments = []
    on_amplifiers = []
    for mic in snapshot.microphones:
        binding = gear_binding(snapshot, mic)
        if isinstance(binding, BoundToInstrument):
            on_instruments.append((snapshot.instrument(binding.instrument_id), mic))
        elif isinstance(binding, BoundToAmplifier):
            on_amplifiers.append((snapshot.amplifier(binding.amplifier_id), mic))
    return on_instruments, on_amplifiers


# --- Ordering rules ---


def instrument_type_priority(instrument_type: str | None) -> int:
    """Console priority for an instrument type.

    bass < guitar < keyboard < other. Any unlisted type shares the "other"
    bucket.
    """
    if instrument_type is None:
        return DEFAULT_TYPE_PRIORITY
    return INSTRUMENT_TYPE_PRIORITY.get(instrument_type, DEFAULT_TYPE_PRIORITY)


def drum_mic_key(pair: tuple[Instrument, Microphone]) -> tuple:
    instrument, mic = pair
    return (instrument.channel_order or 0, instrument.name, instrument.id, mic.name, mic.id)


def instrument_key(instrument: Instrument) -> tuple:
    return (
        instrument_type_priority(instrument.instrument_type),
        instrument.channel_order or 0,
        instrument.name,
        instrument.id,
    )


def amp_key(amplifier: Amplifier) -> tuple:
    return (amplifier.name, amplifier.id)


def vocal_key(member: BandMember) -> tuple:
    """Vocalists first (stable partition), then sort order, name, id."""
    return (
        0 if member.has_role(VOCALIST_ROLE) else 1,
        member.sort_order or 0,
        member.name,
        member.id,
    )


# --- Stages ---


def drum_mic_channels(snapshot: EquipmentSnapshot) -> list[ChannelEntry]:
    """Stage 1: one entry per microphone placed on a drum instrument."""
    on_instruments, _ = _gear_mics(snapshot)
    pairs = [(i, m) for i, m in on_instruments if i.instrument_type == DRUMS_TYPE]
    return [
        _mic_entry(
            mic,
            f"{mic.name}{MIC_TARGET_SEPARATOR}{instrument.name}",
            _member_ref(snapshot, instrument.member_id),
        )
        for instrument, mic in sorted(pairs, key=drum_mic_key)
    ]


def direct_instrument_channels(snapshot: EquipmentSnapshot) -> list[ChannelEntry]:
    """Stage 2: non-drum instruments.

    Instruments routed DI or multi produce one line-level entry using their
    own mono/stereo flag. Amp-routed instruments are left to the amplifier
    stages. A microphone placed directly on a non-drum instrument produces a
    mic entry right after the instrument's own slot.
    """
    on_instruments, _ = _gear_mics(snapshot)
    mics_by_instrument: dict[str, list[Microphone]] = {}
    for instrument, mic in on_instruments:
        if instrument.instrument_type != DRUMS_TYPE:
            mics_by_instrument.setdefault(instrument.id, []).append(mic)

    entries = []
    for instrument in sorted(snapshot.instruments, key=instrument_key):
        if instrument.instrument_type == DRUMS_TYPE:
            continue
        member_id = _member_ref(snapshot, instrument.member_id)
        if is_direct(instrument):
            entries.append(_direct_entry(instrument.name, instrument.mono_stereo, member_id))
        for mic in sorted(mics_by_instrument.get(instrument.id, []), key=lambda m: (m.name, m.id)):
            entries.append(
                _mic_entry(mic, f"{mic.name}{MIC_TARGET_SEPARATOR}{instrument.name}", member_id)
            )
    return entries


def amp_mic_channels(snapshot: EquipmentSnapshot) -> list[ChannelEntry]:
    """Stage 3: one entry per microphone placed on an amplifier."""
    _, on_amplifiers = _gear_mics(snapshot)
    pairs = sorted(on_amplifiers, key=lambda p: (amp_key(p[0]), p[1].name, p[1].id))
    return [
        _mic_entry(
            mic,
            f"{mic.name}{MIC_TARGET_SEPARATOR}{amplifier.name}",
            _member_ref(snapshot, amplifier.member_id),
        )
        for amplifier, mic in pairs
    ]


def amp_direct_channels(snapshot: EquipmentSnapshot) -> list[ChannelEntry]:
    """Stage 4: DI/multi amplifiers that have no microphone on them."""
    entries = []
    for amplifier in sorted(snapshot.amplifiers, key=amp_key):
        if not is_direct(amplifier):
            continue
        if mics_bound_to(snapshot, TargetKind.AMPLIFIER, amplifier.id):
            continue
        entries.append(
            _direct_entry(
                f"{AMP_DIRECT_PREFIX}{amplifier.name}",
                MonoStereo.MONO,
                _member_ref(snapshot, amplifier.member_id),
            )
        )
    return entries


def vocal_channels(snapshot: EquipmentSnapshot) -> list[ChannelEntry]:
    """Stage 5: one entry per member with an existing vocal microphone."""
    pairs = sorted(vocal_bindings(snapshot), key=lambda p: vocal_key(p[0]))
    return [_mic_entry(mic, f"{VOCAL_PREFIX}{member.name}", member.id) for member, mic in pairs]


CHANNEL_STAGES: tuple[tuple[str, Callable[[EquipmentSnapshot], list[ChannelEntry]]], ...] = (
    ("drum_mics", drum_mic_channels),
    ("direct_instruments", direct_instrument_channels),
    ("amp_mics", amp_mic_channels),
    ("amp_direct", amp_direct_channels),
    ("vocals", vocal_channels),
)


# --- Assembly ---


def number_channels(entries: Sequence[ChannelEntry]) -> list[ChannelEntry]:
    """Assign channel numbers 1..N in list order."""
    return [replace(entry, channel_number=n) for n, entry in enumerate(entries, start=1)]


def resolve_channel_list(snapshot: EquipmentSnapshot) -> list[ChannelEntry]:
    """Run every stage in order over one snapshot and number the result."""
    entries: list[ChannelEntry] = []
    counts = {}
    for stage_name, stage in CHANNEL_STAGES:
        stage_entries = stage(snapshot)
        counts[stage_name] = len(stage_entries)
        entries.extend(stage_entries)

    logger.debug("Resolved channel list: %d channels %s", len(entries), counts)
    return number_channels(entries)


def generate_channel_list(source: EquipmentStore | EquipmentSnapshot) -> list[ChannelEntry]:
    """Produce the numbered channel list for the current equipment state.

    Args:
        source: The equipment store (a snapshot is taken under its lock) or
            an already-taken snapshot.

    Returns:
        Ordered list of ChannelEntry numbered from 1.
    """
    snapshot = source.snapshot() if isinstance(source, EquipmentStore) else source
    return resolve_channel_list(snapshot)


# --- Document rendering ---


def channel_list_digest(entries: Sequence[ChannelEntry]) -> str:
    """SHA256 over the canonical JSON form of the entries."""
    canonical = json.dumps(
        [e.to_dict() for e in entries],
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return sha256_text(canonical)


def channel_list_document(entries: Sequence[ChannelEntry]) -> dict[str, Any]:
    """Render the channel list document (specs/channel_list.schema.json).

    No timestamps: the same entries always render to the same document.
    """
    return {
        "schema_id": CHANNEL_LIST_SCHEMA_ID,
        "version": CHANNEL_LIST_VERSION,
        "channel_count": len(entries),
        "digest": channel_list_digest(entries),
        "channels": [e.to_dict() for e in entries],
    }
