"""Tests for bandstage.store (transaction and snapshot contract)."""

import threading
import time

import pytest
from factories import make_amp, make_instrument, make_member, make_mic

from bandstage.models import Microphone
from bandstage.store import EquipmentSnapshot, EquipmentStore, load_snapshot


class TestTransaction:
    def test_commits_on_success(self, store):
        with store.transaction() as session:
            session.add(make_mic("m1", "SM57"))

        assert [m.id for m in store.snapshot().microphones] == ["m1"]

    def test_rolls_back_on_error(self, store):
        with pytest.raises(ValueError):
            with store.transaction() as session:
                session.add(make_mic("m1", "SM57"))
                session.flush()
                raise ValueError("abort")

        assert store.snapshot().microphones == ()

    def test_rows_readable_after_commit(self, store):
        with store.transaction() as session:
            mic = make_mic("m1", "SM57")
            session.add(mic)

        assert mic.name == "SM57"


class TestSnapshot:
    def test_empty_store(self, store):
        snapshot = store.snapshot()
        assert snapshot == EquipmentSnapshot()

    def test_rows_ordered_by_id(self, store, seed):
        seed(make_mic("b", "B"), make_mic("a", "A"), make_mic("c", "C"))
        assert [m.id for m in store.snapshot().microphones] == ["a", "b", "c"]

    def test_lookup_helpers(self, store, seed):
        seed(
            make_member("p1", "Ana"),
            make_mic("m1", "SM57"),
            make_instrument("i1", "Kit", "drums"),
            make_amp("a1", "Twin"),
        )
        snapshot = store.snapshot()

        assert snapshot.member("p1").name == "Ana"
        assert snapshot.microphone("m1").name == "SM57"
        assert snapshot.instrument("i1").name == "Kit"
        assert snapshot.amplifier("a1").name == "Twin"
        assert snapshot.member(None) is None
        assert snapshot.amplifier("missing") is None

    def test_snapshot_is_detached(self, store, seed):
        seed(make_mic("m1", "SM57"))
        snapshot = store.snapshot()

        snapshot.microphones[0].name = "Changed"

        assert store.snapshot().microphones[0].name == "SM57"

    def test_load_snapshot_inside_transaction(self, store, seed):
        seed(make_mic("m1", "SM57"))
        with store.transaction() as session:
            session.add(make_mic("m2", "SM58"))
            session.flush()
            snapshot = load_snapshot(session)

        assert [m.id for m in snapshot.microphones] == ["m1", "m2"]


class TestLocking:
    def test_snapshot_waits_for_running_transaction(self, store):
        """A reader never observes a half-applied mutation."""
        started = threading.Event()
        seen = []

        def reader():
            started.wait()
            seen.append(len(store.snapshot().microphones))

        thread = threading.Thread(target=reader)
        thread.start()
        with store.transaction() as session:
            session.add(make_mic("m1", "SM57"))
            session.flush()
            started.set()
            time.sleep(0.05)
            session.add(make_mic("m2", "SM58"))
        thread.join(timeout=5)

        assert seen == [2]


class TestOpen:
    def test_open_memory_store(self):
        store = EquipmentStore.open(":memory:")
        try:
            with store.transaction() as session:
                session.add(make_mic("m1", "SM57"))
            with store.transaction() as session:
                assert session.get(Microphone, "m1") is not None
        finally:
            store.close()

    def test_open_file_store_persists(self, temp_db_path):
        first = EquipmentStore.open(temp_db_path)
        with first.transaction() as session:
            session.add(make_mic("m1", "SM57"))
        first.close()

        second = EquipmentStore.open(temp_db_path)
        try:
            assert [m.id for m in second.snapshot().microphones] == ["m1"]
        finally:
            second.close()
