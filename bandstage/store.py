"""Band Stage - Equipment store.

The store is the single owner of equipment state. It pairs a session
factory with one lock:

- ``transaction()`` is the only write path. Mutations run one at a time,
  commit on success and roll back on any exception, so a failed operation
  leaves nothing behind.
- ``snapshot()`` reads every table the resolvers need under the same lock,
  so a resolution never observes a half-applied mutation.

The lock is not reentrant: do not open a transaction or take a snapshot
from inside another transaction. Inside a transaction use
``load_snapshot(session)``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session, sessionmaker

from bandstage.db import init_db
from bandstage.models import Amplifier, BandMember, Instrument, Microphone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EquipmentSnapshot:
    """Consistent read of the tables the resolvers consume.

    Rows are detached ORM objects ordered by id. Treat them as read-only:
    changes made to them are never persisted.
    """

    members: tuple[BandMember, ...] = ()
    microphones: tuple[Microphone, ...] = ()
    instruments: tuple[Instrument, ...] = ()
    amplifiers: tuple[Amplifier, ...] = ()

    @cached_property
    def _members_by_id(self) -> dict[str, BandMember]:
        return {m.id: m for m in self.members}

    @cached_property
    def _microphones_by_id(self) -> dict[str, Microphone]:
        return {m.id: m for m in self.microphones}

    @cached_property
    def _instruments_by_id(self) -> dict[str, Instrument]:
        return {i.id: i for i in self.instruments}

    @cached_property
    def _amplifiers_by_id(self) -> dict[str, Amplifier]:
        return {a.id: a for a in self.amplifiers}

    def member(self, member_id: str | None) -> BandMember | None:
        if member_id is None:
            return None
        return self._members_by_id.get(member_id)

    def microphone(self, mic_id: str | None) -> Microphone | None:
        if mic_id is None:
            return None
        return self._microphones_by_id.get(mic_id)

    def instrument(self, instrument_id: str | None) -> Instrument | None:
        if instrument_id is None:
            return None
        return self._instruments_by_id.get(instrument_id)

    def amplifier(self, amp_id: str | None) -> Amplifier | None:
        if amp_id is None:
            return None
        return self._amplifiers_by_id.get(amp_id)


def load_snapshot(session: Session) -> EquipmentSnapshot:
    """Load members, microphones, instruments and amplifiers.

    Args:
        session: Active database session.

    Returns:
        EquipmentSnapshot with every row ordered by id.
    """
    return EquipmentSnapshot(
        members=tuple(session.scalars(select(BandMember).order_by(BandMember.id))),
        microphones=tuple(session.scalars(select(Microphone).order_by(Microphone.id))),
        instruments=tuple(session.scalars(select(Instrument).order_by(Instrument.id))),
        amplifiers=tuple(session.scalars(select(Amplifier).order_by(Amplifier.id))),
    )


class EquipmentStore:
    """Single mutable equipment store guarded by one lock."""

    def __init__(self, session_factory: sessionmaker, engine: Engine | None = None):
        self._session_factory = session_factory
        self._engine = engine
        self._lock = threading.Lock()

    @classmethod
    def open(cls, db_path: str | Path | None = None, echo: bool = False) -> EquipmentStore:
        """Initialize the database and return a store bound to it.

        Args:
            db_path: Optional path override (":memory:" for an in-memory store).
            echo: If True, log all SQL statements.
        """
        engine, SessionFactory = init_db(db_path, echo=echo)
        logger.debug("Opened equipment store at %s", engine.url)
        return cls(SessionFactory, engine=engine)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run one unit of work under the store lock.

        Commits when the block exits normally, rolls back and re-raises on
        any exception.
        """
        with self._lock:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def snapshot(self) -> EquipmentSnapshot:
        """Read a consistent snapshot under the store lock."""
        with self._lock:
            session = self._session_factory()
            try:
                return load_snapshot(session)
            finally:
                session.close()

    def close(self) -> None:
        """Dispose of the engine if this store created it."""
        if self._engine is not None:
            self._engine.dispose()
