import threading
from collections import Counter
from contextlib import contextmanager
from typing import Dict, List, Optional

from .state import Room


class RoomStore:
    """In-memory registry of live rooms, one re-entrant lock per room code.

    Owned by whoever builds the engine (the app factory, or a test), so each
    app instance and each test gets its own isolated set of rooms.

    A code's lock exists only while someone holds or waits on it, or while
    the room itself is live; lookups of unknown codes leave nothing behind.
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._holders: Counter = Counter()
        self._guard = threading.Lock()

    @contextmanager
    def lock(self, code: str):
        with self._guard:
            room_lock = self._locks.get(code)
            if room_lock is None:
                room_lock = self._locks[code] = threading.RLock()
            self._holders[code] += 1
        try:
            with room_lock:
                yield room_lock
        finally:
            with self._guard:
                self._holders[code] -= 1
                if self._holders[code] <= 0:
                    del self._holders[code]
                    if code not in self._rooms:
                        self._locks.pop(code, None)

    def get(self, code: str) -> Optional[Room]:
        return self._rooms.get(code)

    def put(self, room: Room) -> Room:
        self._rooms[room.code] = room
        return room

    def remove(self, code: str) -> Optional[Room]:
        with self._guard:
            if not self._holders[code]:
                self._locks.pop(code, None)
            return self._rooms.pop(code, None)

    def codes(self) -> List[str]:
        return list(self._rooms)

    def locked_codes(self) -> List[str]:
        with self._guard:
            return list(self._locks)

    def __contains__(self, code) -> bool:
        return code in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
