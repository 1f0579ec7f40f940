"""Tests for services.equipment_api.service (mutators and cascades)."""

from datetime import UTC, datetime

import pytest

from bandstage.models import Instrument, Microphone, PaEquipment, Routing, TargetKind
from bandstage.schemas import (
    AmplifierPayload,
    InstrumentPayload,
    MemberPayload,
    MicrophonePayload,
    PaPayload,
)
from services.equipment_api import service
from services.equipment_api.service import (
    EquipmentError,
    EquipmentErrorCode,
    InvalidReferenceError,
    NotFoundError,
)

INST = TargetKind.INSTRUMENT
AMP = TargetKind.AMPLIFIER


def new_mic(store, name="SM57"):
    return service.create_microphone(store, MicrophonePayload(name=name, mic_type="dynamic"))


def new_instrument(store, name="Strat", instrument_type="guitar", **kwargs):
    return service.create_instrument(
        store, InstrumentPayload(name=name, instrument_type=instrument_type, **kwargs)
    )


def new_amp(store, name="Twin", **kwargs):
    return service.create_amplifier(
        store, AmplifierPayload(name=name, amp_type="guitar", **kwargs)
    )


class TestErrors:
    def test_error_codes(self):
        err = NotFoundError("member", "abc")
        assert isinstance(err, EquipmentError)
        assert err.error_code == EquipmentErrorCode.NOT_FOUND
        assert "abc" in err.message

        err = InvalidReferenceError("mic_ids", "microphone", "xyz")
        assert err.error_code == EquipmentErrorCode.INVALID_REFERENCE
        assert err.field == "mic_ids"

    def test_get_missing_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            service.get_member(store, "missing")
        with pytest.raises(NotFoundError):
            service.get_microphone(store, "missing")
        with pytest.raises(NotFoundError):
            service.get_instrument(store, "missing")
        with pytest.raises(NotFoundError):
            service.get_amplifier(store, "missing")

    def test_update_and_delete_missing_raise_not_found(self, store):
        with pytest.raises(NotFoundError):
            service.update_microphone(
                store, "missing", MicrophonePayload(name="x", mic_type="dynamic")
            )
        with pytest.raises(NotFoundError):
            service.delete_instrument(store, "missing")
        with pytest.raises(NotFoundError):
            service.delete_pa_equipment(store, "missing")

    def test_unknown_member_reference_rejected_before_write(self, store):
        with pytest.raises(InvalidReferenceError):
            new_instrument(store, member_id="nobody")
        assert service.list_instruments(store) == []

    def test_unknown_vocal_mic_rejected(self, store):
        with pytest.raises(InvalidReferenceError):
            service.create_member(store, MemberPayload(name="Ana", vocal_mic_id="nope"))
        assert service.list_members(store) == []


class TestCrud:
    def test_member_round_trip(self, store):
        created = service.create_member(
            store, MemberPayload(name="Ana", roles=["vocalist", "guitarist"], sort_order=2)
        )
        fetched = service.get_member(store, created.id)
        assert fetched == created
        assert fetched.roles == ["vocalist", "guitarist"]

        updated = service.update_member(store, created.id, MemberPayload(name="Ana B."))
        assert updated.name == "Ana B."
        assert updated.roles == []

    def test_ids_are_unique_hex(self, store):
        a = new_mic(store)
        b = new_mic(store)
        assert a.id != b.id
        assert len(a.id) == 32

    def test_new_microphone_is_unassigned(self, store):
        mic = new_mic(store)
        assert mic.assigned_to_type is None
        assert mic.assigned_to_id is None

    def test_update_microphone_keeps_assignment(self, store):
        mic = new_mic(store)
        kit = new_instrument(store, name="Kit", instrument_type="drums")
        service.set_microphone_assignments(store, INST, kit.id, [mic.id])

        updated = service.update_microphone(
            store, mic.id, MicrophonePayload(name="Kick", mic_type="dynamic", phantom_power=True)
        )

        assert updated.name == "Kick"
        assert updated.phantom_power is True
        assert updated.assigned_to_type == INST
        assert updated.assigned_to_id == kit.id

    def test_list_orderings(self, store):
        service.create_member(store, MemberPayload(name="Zed", sort_order=0))
        service.create_member(store, MemberPayload(name="Amy", sort_order=1))
        service.create_member(store, MemberPayload(name="Bob", sort_order=0))
        assert [m.name for m in service.list_members(store)] == ["Bob", "Zed", "Amy"]

    def test_pa_crud(self, store):
        item = service.create_pa_equipment(
            store, PaPayload(category="console", name="X32", channels=32, aux_sends=16)
        )
        assert service.list_pa_equipment(store)[0].channels == 32

        updated = service.update_pa_equipment(
            store, item.id, PaPayload(category="console", name="X32", quantity=2)
        )
        assert updated.quantity == 2

        service.delete_pa_equipment(store, item.id)
        assert service.list_pa_equipment(store) == []

    def test_pa_update_refreshes_updated_at(self, store, seed):
        old = datetime(2020, 1, 1, tzinfo=UTC)
        seed(
            PaEquipment(
                id="pa1", category="monitor", name="Wedge", created_at=old, updated_at=old
            )
        )

        service.update_pa_equipment(store, "pa1", PaPayload(category="monitor", name="Wedge 12"))

        with store.transaction() as session:
            item = session.get(PaEquipment, "pa1")
            assert item.created_at.year == 2020
            assert item.updated_at.year > 2020


class TestInstrumentAmpLink:
    def test_link_marks_instrument_amp_routed(self, store):
        amp = new_amp(store)
        strat = new_instrument(store)

        result = service.set_instrument_amp_link(store, amp.id, strat.id)

        assert result.instrument_id == strat.id
        assert result.unlinked_instrument_ids == []
        linked = service.get_instrument(store, strat.id)
        assert linked.amp_id == amp.id
        assert linked.routing == Routing.MIC

    def test_relinking_detaches_previous_instrument(self, store):
        amp = new_amp(store, name="Y")
        x = new_instrument(store, name="X")
        z = new_instrument(store, name="Z")

        service.set_instrument_amp_link(store, amp.id, x.id)
        result = service.set_instrument_amp_link(store, amp.id, z.id)

        assert result.unlinked_instrument_ids == [x.id]
        x_now = service.get_instrument(store, x.id)
        z_now = service.get_instrument(store, z.id)
        assert x_now.amp_id is None
        assert x_now.routing == Routing.DIRECT_INJECTION
        assert z_now.amp_id == amp.id
        assert z_now.routing == Routing.MIC
        linked = [i.id for i in service.list_instruments(store) if i.amp_id == amp.id]
        assert linked == [z.id]

    def test_relinking_same_instrument_is_stable(self, store):
        amp = new_amp(store)
        strat = new_instrument(store)

        service.set_instrument_amp_link(store, amp.id, strat.id)
        result = service.set_instrument_amp_link(store, amp.id, strat.id)

        assert result.unlinked_instrument_ids == []
        assert service.get_instrument(store, strat.id).amp_id == amp.id

    def test_unlink_with_none(self, store):
        amp = new_amp(store)
        strat = new_instrument(store)
        service.set_instrument_amp_link(store, amp.id, strat.id)

        result = service.set_instrument_amp_link(store, amp.id, None)

        assert result.unlinked_instrument_ids == [strat.id]
        assert service.get_instrument(store, strat.id).amp_id is None

    def test_missing_amp_is_not_found(self, store):
        strat = new_instrument(store)
        with pytest.raises(NotFoundError):
            service.set_instrument_amp_link(store, "missing", strat.id)

    def test_missing_instrument_leaves_existing_link(self, store):
        amp = new_amp(store)
        strat = new_instrument(store)
        service.set_instrument_amp_link(store, amp.id, strat.id)

        with pytest.raises(InvalidReferenceError):
            service.set_instrument_amp_link(store, amp.id, "missing")

        assert service.get_instrument(store, strat.id).amp_id == amp.id

    def test_rerouting_instrument_off_mic_unlinks(self, store):
        amp = new_amp(store)
        strat = new_instrument(store)
        service.set_instrument_amp_link(store, amp.id, strat.id)

        updated = service.update_instrument(
            store,
            strat.id,
            InstrumentPayload(
                name="Strat", instrument_type="guitar", routing=Routing.DIRECT_INJECTION
            ),
        )

        assert updated.amp_id is None


class TestMicrophoneAssignments:
    def test_assign_replaces_previous_set(self, store):
        kit = new_instrument(store, name="Kit", instrument_type="drums")
        a, b, c = new_mic(store, "A"), new_mic(store, "B"), new_mic(store, "C")
        service.set_microphone_assignments(store, INST, kit.id, [a.id, b.id])

        result = service.set_microphone_assignments(store, INST, kit.id, [b.id, c.id])

        assert result.mic_ids == [b.id, c.id]
        assert result.released_mic_ids == [a.id]
        assert service.get_microphone(store, a.id).assigned_to_id is None
        assert service.get_microphone(store, c.id).assigned_to_id == kit.id

    def test_attaching_steals_from_other_target(self, store):
        kit = new_instrument(store, name="Kit", instrument_type="drums")
        amp = new_amp(store)
        mic = new_mic(store)
        service.set_microphone_assignments(store, INST, kit.id, [mic.id])

        service.set_microphone_assignments(store, AMP, amp.id, [mic.id])

        moved = service.get_microphone(store, mic.id)
        assert moved.assigned_to_type == AMP
        assert moved.assigned_to_id == amp.id

    def test_empty_list_clears_target(self, store):
        kit = new_instrument(store, name="Kit", instrument_type="drums")
        mics = [new_mic(store, f"M{i}") for i in range(3)]
        service.set_microphone_assignments(store, INST, kit.id, [m.id for m in mics])

        result = service.set_microphone_assignments(store, INST, kit.id, [])

        assert result.mic_ids == []
        assert sorted(result.released_mic_ids) == sorted(m.id for m in mics)
        for m in service.list_microphones(store):
            assert m.assigned_to_type is None

    def test_kind_given_as_string(self, store):
        amp = new_amp(store)
        mic = new_mic(store)
        result = service.set_microphone_assignments(store, "amplifier", amp.id, [mic.id])
        assert result.target_kind == AMP

    def test_unknown_mic_writes_nothing(self, store):
        kit = new_instrument(store, name="Kit", instrument_type="drums")
        mic = new_mic(store)
        service.set_microphone_assignments(store, INST, kit.id, [mic.id])

        with pytest.raises(InvalidReferenceError):
            service.set_microphone_assignments(store, INST, kit.id, ["missing"])

        assert service.get_microphone(store, mic.id).assigned_to_id == kit.id

    def test_missing_target_is_not_found(self, store):
        mic = new_mic(store)
        with pytest.raises(NotFoundError):
            service.set_microphone_assignments(store, AMP, "missing", [mic.id])

    def test_target_kind_is_checked(self, store):
        """An instrument id is not a valid amplifier target."""
        strat = new_instrument(store)
        with pytest.raises(NotFoundError):
            service.set_microphone_assignments(store, AMP, strat.id, [])


class TestVocalMic:
    def test_set_and_clear(self, store):
        member = service.create_member(store, MemberPayload(name="Ana"))
        mic = new_mic(store, "SM58")

        assert service.set_member_vocal_mic(store, member.id, mic.id).vocal_mic_id == mic.id
        assert service.set_member_vocal_mic(store, member.id, None).vocal_mic_id is None

    def test_vocal_mic_independent_of_assignment(self, store):
        member = service.create_member(store, MemberPayload(name="Drummer"))
        kit = new_instrument(store, name="Kit", instrument_type="drums")
        mic = new_mic(store, "Talkback")
        service.set_microphone_assignments(store, INST, kit.id, [mic.id])

        service.set_member_vocal_mic(store, member.id, mic.id)

        assert service.get_microphone(store, mic.id).assigned_to_id == kit.id

    def test_unknown_mic_rejected(self, store):
        member = service.create_member(store, MemberPayload(name="Ana"))
        with pytest.raises(InvalidReferenceError):
            service.set_member_vocal_mic(store, member.id, "missing")


class TestCascades:
    def test_delete_instrument_releases_mics(self, store):
        kit = new_instrument(store, name="Kit", instrument_type="drums")
        mic = new_mic(store)
        service.set_microphone_assignments(store, INST, kit.id, [mic.id])

        service.delete_instrument(store, kit.id)

        assert service.get_microphone(store, mic.id).assigned_to_type is None

    def test_delete_amplifier_releases_mics_and_resets_instrument(self, store):
        amp = new_amp(store)
        strat = new_instrument(store)
        mic = new_mic(store)
        service.set_instrument_amp_link(store, amp.id, strat.id)
        service.set_microphone_assignments(store, AMP, amp.id, [mic.id])

        service.delete_amplifier(store, amp.id)

        assert service.get_microphone(store, mic.id).assigned_to_id is None
        strat_now = service.get_instrument(store, strat.id)
        assert strat_now.amp_id is None
        assert strat_now.routing == Routing.DIRECT_INJECTION

    def test_delete_microphone_clears_vocal_slot(self, store):
        mic = new_mic(store, "SM58")
        member = service.create_member(store, MemberPayload(name="Ana", vocal_mic_id=mic.id))

        service.delete_microphone(store, mic.id)

        assert service.get_member(store, member.id).vocal_mic_id is None

    def test_delete_member_orphans_gear(self, store):
        member = service.create_member(store, MemberPayload(name="Ana"))
        strat = new_instrument(store, member_id=member.id)
        amp = new_amp(store, member_id=member.id)

        service.delete_member(store, member.id)

        assert service.get_instrument(store, strat.id).member_id is None
        assert service.get_amplifier(store, amp.id).member_id is None
        assert service.list_members(store) == []


class TestAtomicity:
    def test_failed_transaction_rolls_back(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction() as session:
                session.add(Microphone(id="m1", name="Temp", mic_type="dynamic"))
                session.flush()
                raise RuntimeError("boom")

        assert service.list_microphones(store) == []

    def test_not_found_mid_mutation_leaves_no_write(self, store):
        strat = new_instrument(store)
        with pytest.raises(NotFoundError):
            with store.transaction() as session:
                session.get(Instrument, strat.id).name = "Renamed"
                session.flush()
                raise NotFoundError("amplifier", "missing")

        assert service.get_instrument(store, strat.id).name == "Strat"
