"""Band Stage - Equipment API FastAPI application.

Command layer for the equipment store: CRUD for each entity kind, the
routing mutators (amp link, microphone placement, vocal mic) and the
derived channel list. Business rules live in services.equipment_api.service;
this module only maps HTTP onto them.

Run with:
    uvicorn services.equipment_api.main:app --reload  # dev server only
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from bandstage.channel_list import channel_list_document, generate_channel_list
from bandstage.models import TargetKind
from bandstage.schemas import (
    AmplifierPayload,
    AmplifierResponse,
    AmpLinkRequest,
    AmpLinkResponse,
    ChannelListResponse,
    ErrorResponse,
    InstrumentPayload,
    InstrumentResponse,
    MemberPayload,
    MemberResponse,
    MicAssignmentRequest,
    MicAssignmentResponse,
    MicrophonePayload,
    MicrophoneResponse,
    PaPayload,
    PaResponse,
    VocalMicRequest,
)
from bandstage.store import EquipmentStore
from services.equipment_api import service
from services.equipment_api.service import EquipmentError, EquipmentErrorCode

logger = logging.getLogger(__name__)

# --- Store Setup ---

# Module-level store (initialized on startup)
_store: EquipmentStore | None = None


def get_store() -> EquipmentStore:
    """Dependency that provides the equipment store.

    Raises:
        RuntimeError: If the store is not initialized (app lifespan not invoked).
    """
    if _store is None:
        raise RuntimeError("Equipment store not initialized. App lifespan not invoked?")
    return _store


StoreDep = Annotated[EquipmentStore, Depends(get_store)]


# --- Lifespan ---


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Opens the equipment store on startup unless a test already installed one.
    """
    global _store
    owned = _store is None
    if owned:
        _store = EquipmentStore.open()

    yield

    if owned and _store is not None:
        _store.close()
        _store = None


# --- FastAPI App ---


app = FastAPI(
    title="Band Stage - Equipment API",
    description="Band equipment, routing and stage channel list.",
    version="0.1.0",
    lifespan=lifespan,
)


# --- Error Handling ---


def error_code_to_status(error_code: str) -> int:
    """Map error codes to HTTP status codes.

    - NOT_FOUND -> 404
    - INVALID_REFERENCE -> 422
    - anything else -> 500
    """
    if error_code == EquipmentErrorCode.NOT_FOUND:
        return 404
    if error_code == EquipmentErrorCode.INVALID_REFERENCE:
        return 422
    return 500


def make_error_response(error_code: str, error_message: str) -> JSONResponse:
    """Create a JSON error response."""
    return JSONResponse(
        status_code=error_code_to_status(error_code),
        content=ErrorResponse(
            error_code=error_code,
            error_message=error_message,
        ).model_dump(),
    )


@app.exception_handler(EquipmentError)
async def equipment_error_handler(request: Request, exc: EquipmentError) -> JSONResponse:
    return make_error_response(exc.error_code, exc.message)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Log full exception server-side, return generic message to client
    logger.exception("Unexpected error handling %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error_code="INTERNAL_ERROR",
            error_message="An unexpected error occurred",
        ).model_dump(),
    )


_ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Record not found"},
    422: {"model": ErrorResponse, "description": "Invalid reference or payload"},
}


# --- Members ---


@app.get("/v1/members", response_model=list[MemberResponse], summary="List band members")
def list_members(store: StoreDep):
    return service.list_members(store)


@app.post("/v1/members", response_model=MemberResponse, status_code=201, responses=_ERROR_RESPONSES)
def create_member(payload: MemberPayload, store: StoreDep):
    return service.create_member(store, payload)


@app.get("/v1/members/{member_id}", response_model=MemberResponse, responses=_ERROR_RESPONSES)
def get_member(member_id: str, store: StoreDep):
    return service.get_member(store, member_id)


@app.put("/v1/members/{member_id}", response_model=MemberResponse, responses=_ERROR_RESPONSES)
def update_member(member_id: str, payload: MemberPayload, store: StoreDep):
    return service.update_member(store, member_id, payload)


@app.put(
    "/v1/members/{member_id}/vocal-mic",
    response_model=MemberResponse,
    responses=_ERROR_RESPONSES,
    summary="Set or clear a member's vocal microphone",
)
def set_member_vocal_mic(member_id: str, request: VocalMicRequest, store: StoreDep):
    return service.set_member_vocal_mic(store, member_id, request.mic_id)


@app.delete("/v1/members/{member_id}", status_code=204, responses=_ERROR_RESPONSES)
def delete_member(member_id: str, store: StoreDep):
    service.delete_member(store, member_id)


# --- Microphones ---


@app.get("/v1/microphones", response_model=list[MicrophoneResponse], summary="List microphones")
def list_microphones(store: StoreDep):
    return service.list_microphones(store)


@app.post(
    "/v1/microphones",
    response_model=MicrophoneResponse,
    status_code=201,
    responses=_ERROR_RESPONSES,
)
def create_microphone(payload: MicrophonePayload, store: StoreDep):
    return service.create_microphone(store, payload)


@app.get("/v1/microphones/{mic_id}", response_model=MicrophoneResponse, responses=_ERROR_RESPONSES)
def get_microphone(mic_id: str, store: StoreDep):
    return service.get_microphone(store, mic_id)


@app.put("/v1/microphones/{mic_id}", response_model=MicrophoneResponse, responses=_ERROR_RESPONSES)
def update_microphone(mic_id: str, payload: MicrophonePayload, store: StoreDep):
    return service.update_microphone(store, mic_id, payload)


@app.delete("/v1/microphones/{mic_id}", status_code=204, responses=_ERROR_RESPONSES)
def delete_microphone(mic_id: str, store: StoreDep):
    service.delete_microphone(store, mic_id)


# --- Instruments ---


@app.get("/v1/instruments", response_model=list[InstrumentResponse], summary="List instruments")
def list_instruments(store: StoreDep):
    return service.list_instruments(store)


@app.post(
    "/v1/instruments",
    response_model=InstrumentResponse,
    status_code=201,
    responses=_ERROR_RESPONSES,
)
def create_instrument(payload: InstrumentPayload, store: StoreDep):
    return service.create_instrument(store, payload)


@app.get(
    "/v1/instruments/{instrument_id}",
    response_model=InstrumentResponse,
    responses=_ERROR_RESPONSES,
)
def get_instrument(instrument_id: str, store: StoreDep):
    return service.get_instrument(store, instrument_id)


@app.put(
    "/v1/instruments/{instrument_id}",
    response_model=InstrumentResponse,
    responses=_ERROR_RESPONSES,
)
def update_instrument(instrument_id: str, payload: InstrumentPayload, store: StoreDep):
    return service.update_instrument(store, instrument_id, payload)


@app.put(
    "/v1/instruments/{instrument_id}/microphones",
    response_model=MicAssignmentResponse,
    responses=_ERROR_RESPONSES,
    summary="Replace the microphones placed on an instrument",
)
def set_instrument_microphones(instrument_id: str, request: MicAssignmentRequest, store: StoreDep):
    return service.set_microphone_assignments(
        store, TargetKind.INSTRUMENT, instrument_id, request.mic_ids
    )


@app.delete("/v1/instruments/{instrument_id}", status_code=204, responses=_ERROR_RESPONSES)
def delete_instrument(instrument_id: str, store: StoreDep):
    service.delete_instrument(store, instrument_id)


# --- Amplifiers ---


@app.get("/v1/amplifiers", response_model=list[AmplifierResponse], summary="List amplifiers")
def list_amplifiers(store: StoreDep):
    return service.list_amplifiers(store)


@app.post(
    "/v1/amplifiers",
    response_model=AmplifierResponse,
    status_code=201,
    responses=_ERROR_RESPONSES,
)
def create_amplifier(payload: AmplifierPayload, store: StoreDep):
    return service.create_amplifier(store, payload)


@app.get("/v1/amplifiers/{amp_id}", response_model=AmplifierResponse, responses=_ERROR_RESPONSES)
def get_amplifier(amp_id: str, store: StoreDep):
    return service.get_amplifier(store, amp_id)


@app.put("/v1/amplifiers/{amp_id}", response_model=AmplifierResponse, responses=_ERROR_RESPONSES)
def update_amplifier(amp_id: str, payload: AmplifierPayload, store: StoreDep):
    return service.update_amplifier(store, amp_id, payload)


@app.put(
    "/v1/amplifiers/{amp_id}/instrument",
    response_model=AmpLinkResponse,
    responses=_ERROR_RESPONSES,
    summary="Set the instrument feeding an amplifier",
)
def set_amplifier_instrument(amp_id: str, request: AmpLinkRequest, store: StoreDep):
    return service.set_instrument_amp_link(store, amp_id, request.instrument_id)


@app.put(
    "/v1/amplifiers/{amp_id}/microphones",
    response_model=MicAssignmentResponse,
    responses=_ERROR_RESPONSES,
    summary="Replace the microphones placed on an amplifier",
)
def set_amplifier_microphones(amp_id: str, request: MicAssignmentRequest, store: StoreDep):
    return service.set_microphone_assignments(store, TargetKind.AMPLIFIER, amp_id, request.mic_ids)


@app.delete("/v1/amplifiers/{amp_id}", status_code=204, responses=_ERROR_RESPONSES)
def delete_amplifier(amp_id: str, store: StoreDep):
    service.delete_amplifier(store, amp_id)


# --- PA Equipment ---


@app.get("/v1/pa", response_model=list[PaResponse], summary="List PA equipment")
def list_pa_equipment(store: StoreDep):
    return service.list_pa_equipment(store)


@app.post("/v1/pa", response_model=PaResponse, status_code=201)
def create_pa_equipment(payload: PaPayload, store: StoreDep):
    return service.create_pa_equipment(store, payload)


@app.put("/v1/pa/{item_id}", response_model=PaResponse, responses=_ERROR_RESPONSES)
def update_pa_equipment(item_id: str, payload: PaPayload, store: StoreDep):
    return service.update_pa_equipment(store, item_id, payload)


@app.delete("/v1/pa/{item_id}", status_code=204, responses=_ERROR_RESPONSES)
def delete_pa_equipment(item_id: str, store: StoreDep):
    service.delete_pa_equipment(store, item_id)


# --- Channel List ---


@app.get(
    "/v1/channel-list",
    response_model=ChannelListResponse,
    summary="Generate the stage channel list",
    description="Ordered console input list derived from the current equipment state.",
)
def get_channel_list(store: StoreDep):
    """Resolve the channel list. Never fails on incomplete equipment data."""
    return channel_list_document(generate_channel_list(store))


@app.get("/health", summary="Health check")
def health_check():
    """Simple health check endpoint."""
    return {"status": "ok"}


# --- For testing: allow overriding the store ---


def override_store(store: EquipmentStore | None) -> None:
    """Override the equipment store for testing."""
    global _store
    _store = store
