"""Room snapshots in the SQL store.

The table acts as a key-value store with expiry: one row per room code
holding the serialized room and the time after which it is ignored.
"""

import json
import time
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from bluffmaster import db
from bluffmaster.models import RoomSnapshot
from bluffmaster.services.game.errors import PersistenceError
from bluffmaster.services.game.state import Room

DEFAULT_TTL_SEC = 24 * 60 * 60


class RoomPersistence:
    def __init__(self, session=None, ttl_seconds: int = DEFAULT_TTL_SEC, clock=time.time):
        self._session = session
        self.ttl_seconds = int(ttl_seconds)
        self.clock = clock

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def save(self, room: Room) -> None:
        now = self.clock()
        try:
            row = self.session.query(RoomSnapshot).filter_by(code=room.code).first()
            if row is None:
                row = RoomSnapshot(code=room.code)
            row.payload = json.dumps(room.to_dict())
            row.expires_at = now + self.ttl_seconds
            row.updated_at = now
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(f"save failed for room {room.code}: {exc}") from exc

    def load(self, code: str) -> Optional[Room]:
        try:
            row = self.session.query(RoomSnapshot).filter_by(code=code).first()
            if row is None:
                return None
            if row.is_expired(self.clock()):
                self.session.delete(row)
                self.session.commit()
                return None
            payload = row.payload
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(f"load failed for room {code}: {exc}") from exc
        try:
            return Room.from_dict(json.loads(payload))
        except (ValueError, KeyError, TypeError) as exc:
            raise PersistenceError(f"corrupt snapshot for room {code}: {exc}") from exc

    def delete(self, code: str) -> None:
        try:
            self.session.query(RoomSnapshot).filter_by(code=code).delete()
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(f"delete failed for room {code}: {exc}") from exc

    def purge_expired(self) -> int:
        try:
            removed = self.session.query(RoomSnapshot).filter(RoomSnapshot.expires_at <= self.clock()).delete()
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(f"purge failed: {exc}") from exc
        return removed
