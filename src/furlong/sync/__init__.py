"""Record-store sync between the host and read-only clients."""

from .room import RoomSync
from .store import InMemoryRecordStore, RecordStore

__all__ = ["InMemoryRecordStore", "RecordStore", "RoomSync"]
