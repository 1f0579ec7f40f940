"""Band Stage - Pydantic models for payload validation.

Request payloads carry the user-editable fields of each entity kind.
Assignment and amp-link state is not part of any entity payload: it is
changed only through the dedicated routing operations.
"""

from pydantic import BaseModel, ConfigDict, Field  # noqa: I001

from bandstage.config import CHANNEL_LIST_SCHEMA_ID, CHANNEL_LIST_VERSION
from bandstage.models import MonoStereo, Routing, TargetKind


# --- Request Models ---


class MemberPayload(BaseModel):
    """Create/update payload for a band member."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, description="Display name")
    roles: list[str] = Field(
        default_factory=list,
        description="Role tags, e.g. vocalist, guitarist (multiple allowed)",
    )
    stage_position: str | None = Field(default=None, description="Stage position key")
    vocal_mic_id: str | None = Field(
        default=None, min_length=1, description="Microphone used for this member's vocals"
    )
    sort_order: int = Field(default=0, description="Manual ordering")
    notes: str | None = Field(default=None, description="Free-text notes")


class MicrophonePayload(BaseModel):
    """Create/update payload for a microphone."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, description="Display name")
    brand: str | None = Field(default=None, description="Manufacturer")
    model: str | None = Field(default=None, description="Model, e.g. SM57")
    mic_type: str = Field(..., min_length=1, description="dynamic / condenser / ribbon")
    polar_pattern: str | None = Field(default=None, description="Polar pattern")
    phantom_power: bool = Field(default=False, description="Needs +48V")
    mono_stereo: MonoStereo = Field(default=MonoStereo.MONO, description="Capsule width")
    usage: str | None = Field(default=None, description="Intended usage note")
    notes: str | None = Field(default=None, description="Free-text notes")


class InstrumentPayload(BaseModel):
    """Create/update payload for an instrument.

    The amplifier link is set with the amp-link operation, not here.
    """

    model_config = ConfigDict(extra="forbid")

    member_id: str | None = Field(default=None, min_length=1, description="Owning member")
    name: str = Field(..., min_length=1, description="Display name")
    instrument_type: str = Field(
        ..., min_length=1, description="drums / bass / guitar / keyboard / other"
    )
    brand: str | None = Field(default=None, description="Manufacturer")
    model: str | None = Field(default=None, description="Model")
    routing: Routing = Field(default=Routing.DIRECT_INJECTION, description="Signal routing")
    mono_stereo: MonoStereo = Field(default=MonoStereo.MONO, description="Channel width")
    channel_order: int = Field(default=0, description="Tie-break within the instrument type")
    notes: str | None = Field(default=None, description="Free-text notes")


class AmplifierPayload(BaseModel):
    """Create/update payload for an amplifier."""

    model_config = ConfigDict(extra="forbid")

    member_id: str | None = Field(default=None, min_length=1, description="Owning member")
    name: str = Field(..., min_length=1, description="Display name")
    amp_type: str = Field(..., min_length=1, description="guitar / bass / keyboard")
    brand: str | None = Field(default=None, description="Manufacturer")
    model: str | None = Field(default=None, description="Model")
    wattage: int | None = Field(default=None, ge=0, description="Power in watts")
    routing: Routing = Field(default=Routing.DIRECT_INJECTION, description="Signal routing")
    mono_stereo: MonoStereo = Field(default=MonoStereo.MONO, description="Channel width")
    stage_position: str | None = Field(default=None, description="Stage position key")
    notes: str | None = Field(default=None, description="Free-text notes")
    cabinet_brand: str | None = Field(default=None, description="Cabinet manufacturer")
    speaker_brand: str | None = Field(default=None, description="Speaker manufacturer")
    speaker_model: str | None = Field(default=None, description="Speaker model")
    speaker_config: str | None = Field(default=None, description="e.g. 4x12")


class PaPayload(BaseModel):
    """Create/update payload for front-of-house gear."""

    model_config = ConfigDict(extra="forbid")

    category: str = Field(..., min_length=1, description="console / main-speaker / monitor / ...")
    name: str = Field(..., min_length=1, description="Display name")
    brand: str | None = Field(default=None, description="Manufacturer")
    model: str | None = Field(default=None, description="Model")
    quantity: int = Field(default=1, ge=0, description="Units available")
    channels: int | None = Field(default=None, ge=0, description="Input channels (consoles)")
    aux_sends: int | None = Field(default=None, ge=0, description="Aux sends (consoles)")
    wattage: int | None = Field(default=None, ge=0, description="Power in watts")
    monitor_type: str | None = Field(default=None, description="speaker / iem")
    iem_wireless: bool = Field(default=False, description="Wireless in-ear system")
    notes: str | None = Field(default=None, description="Free-text notes")


class AmpLinkRequest(BaseModel):
    """Instrument that should feed an amplifier (null unlinks)."""

    model_config = ConfigDict(extra="forbid")

    instrument_id: str | None = Field(default=None, min_length=1)


class MicAssignmentRequest(BaseModel):
    """Full set of microphones that should be placed on a target."""

    model_config = ConfigDict(extra="forbid")

    mic_ids: list[str] = Field(default_factory=list)


class VocalMicRequest(BaseModel):
    """Vocal microphone for a member (null clears it)."""

    model_config = ConfigDict(extra="forbid")

    mic_id: str | None = Field(default=None, min_length=1)


# --- Response Models ---


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    roles: list[str]
    stage_position: str | None = None
    vocal_mic_id: str | None = None
    sort_order: int
    notes: str | None = None


class MicrophoneResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    brand: str | None = None
    model: str | None = None
    mic_type: str
    polar_pattern: str | None = None
    phantom_power: bool
    mono_stereo: MonoStereo
    usage: str | None = None
    notes: str | None = None
    assigned_to_type: TargetKind | None = None
    assigned_to_id: str | None = None


class InstrumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    member_id: str | None = None
    name: str
    instrument_type: str
    brand: str | None = None
    model: str | None = None
    routing: Routing
    mono_stereo: MonoStereo
    channel_order: int
    amp_id: str | None = None
    notes: str | None = None


class AmplifierResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    member_id: str | None = None
    name: str
    amp_type: str
    brand: str | None = None
    model: str | None = None
    wattage: int | None = None
    routing: Routing
    mono_stereo: MonoStereo
    stage_position: str | None = None
    notes: str | None = None
    cabinet_brand: str | None = None
    speaker_brand: str | None = None
    speaker_model: str | None = None
    speaker_config: str | None = None


class PaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    category: str
    name: str
    brand: str | None = None
    model: str | None = None
    quantity: int
    channels: int | None = None
    aux_sends: int | None = None
    wattage: int | None = None
    monitor_type: str | None = None
    iem_wireless: bool
    notes: str | None = None


class ChannelEntryResponse(BaseModel):
    """One console input channel.

    Corresponds to the channel item in specs/channel_list.schema.json.
    """

    model_config = ConfigDict(extra="forbid", from_attributes=True)

    channel_number: int = Field(..., ge=1, description="1-based console channel")
    name: str = Field(..., description="Channel label")
    mono_stereo: MonoStereo = Field(..., description="Channel width")
    phantom_power: bool = Field(..., description="Needs +48V")
    mic_model: str | None = Field(default=None, description="Mic brand/model or DI placeholder")
    mic_type: str | None = Field(default=None, description="Mic type")
    polar_pattern: str | None = Field(default=None, description="Polar pattern")
    notes: str | None = Field(default=None, description="Free-text note")
    member_id: str | None = Field(default=None, description="Owning member for grouping")


class ChannelListResponse(BaseModel):
    """Channel list document.

    Corresponds to specs/channel_list.schema.json.
    """

    model_config = ConfigDict(extra="forbid")

    schema_id: str = Field(default=CHANNEL_LIST_SCHEMA_ID, description="Schema identifier")
    version: str = Field(default=CHANNEL_LIST_VERSION, description="Schema version")
    channel_count: int = Field(..., ge=0, description="Number of channels")
    digest: str = Field(..., description="SHA256 of the canonical channel entries")
    channels: list[ChannelEntryResponse] = Field(default_factory=list)


class AmpLinkResponse(BaseModel):
    """Outcome of linking an instrument to an amplifier."""

    amp_id: str
    instrument_id: str | None = None
    unlinked_instrument_ids: list[str] = Field(default_factory=list)


class MicAssignmentResponse(BaseModel):
    """Outcome of replacing the microphones placed on a target."""

    target_kind: TargetKind
    target_id: str
    mic_ids: list[str] = Field(default_factory=list)
    released_mic_ids: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Response for failed operations."""

    model_config = ConfigDict(extra="forbid")

    status: str = Field(default="error", description="Operation status")
    error_code: str = Field(..., description="NOT_FOUND / INVALID_REFERENCE")
    error_message: str = Field(..., description="Human-readable error description")


__all__ = [
    "MemberPayload",
    "MicrophonePayload",
    "InstrumentPayload",
    "AmplifierPayload",
    "PaPayload",
    "AmpLinkRequest",
    "MicAssignmentRequest",
    "VocalMicRequest",
    "MemberResponse",
    "MicrophoneResponse",
    "InstrumentResponse",
    "AmplifierResponse",
    "PaResponse",
    "ChannelEntryResponse",
    "ChannelListResponse",
    "AmpLinkResponse",
    "MicAssignmentResponse",
    "ErrorResponse",
]
