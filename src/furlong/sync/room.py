"""Room-level sync: the host publishes race results, clients mirror them."""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from furlong.config import SyncConfig
from furlong.errors import ConfigurationError, SyncRoleError, SyncWriteError
from furlong.models import IssuedQuestion, RaceSnapshot, RacingEntity, Ranking
from furlong.simulation.scheduler import AsyncioScheduler, Scheduler
from furlong.sync.store import RecordStore, Unsubscribe

logger = logging.getLogger(__name__)


class RoomSync:
    """Writes one room's race record and mirrors it back.

    The host is the only writer of race results (progress, speed, status,
    winner, rankings, current question). Every participant may write its
    own input fields (tap count, last answer).
    """

    def __init__(
        self,
        store: RecordStore | None,
        room_code: str,
        player_id: str,
        is_host: bool = False,
        config: SyncConfig | None = None,
        scheduler: Scheduler | None = None,
    ):
        """Initialize the room sync.

        Args:
            store: Shared record store
            room_code: Room identifier under the rooms root
            player_id: The local participant
            is_host: Whether the local participant runs the simulation
            config: Push throttle and root path
            scheduler: Clock used for timestamps and throttling

        Raises:
            ConfigurationError: If no store is supplied
        """
        if store is None:
            raise ConfigurationError("RoomSync requires a record store; none is configured")
        self.store = store
        self.room_code = room_code
        self.player_id = player_id
        self.is_host = is_host
        self.config = config or SyncConfig()
        self.scheduler = scheduler or AsyncioScheduler()
        self.room_path = f"{self.config.rooms_root}/{room_code}"
        self._last_push_ms: float | None = None

    def _require_host(self, action: str) -> None:
        if not self.is_host:
            raise SyncRoleError(f"{action} is host-only; {self.player_id!r} is not the host")

    def _player_path(self, player_id: str, field: str = "") -> str:
        path = f"players/{player_id}"
        return f"{path}/{field}" if field else path

    def _write(self, fields: Mapping[str, Any]) -> None:
        self.store.update(self.room_path, fields)

    def _try_write(self, action: str, fields: Mapping[str, Any]) -> bool:
        try:
            self._write(fields)
        except SyncWriteError as ex:
            logger.warning("%s failed for room %s: %s", action, self.room_code, ex)
            return False
        return True

    # ---------- host writes ----------

    def start_race(self, roster: Mapping[str, RacingEntity]) -> None:
        """Write the starting roster and mark the room as racing.

        Raises:
            SyncRoleError: If the local participant is not the host
            SyncWriteError: If the store rejects the write
        """
        self._require_host("start_race")
        fields: dict[str, Any] = {
            "status": "racing",
            "race": {"start_ms": self.scheduler.now_ms()},
            "current_trivia": None,
        }
        for pid, entity in roster.items():
            fields[self._player_path(pid)] = entity.model_dump(mode="json")
        self._write(fields)
        self._last_push_ms = None
        logger.info("Room %s racing with %d players", self.room_code, len(roster))

    def push_snapshot(self, snapshot: RaceSnapshot, force: bool = False) -> bool:
        """Rewrite every entity's progress and speed.

        Pushes closer together than ``push_interval_ms`` are skipped unless
        ``force`` is set. Write failures are logged; the next push repairs
        the record.

        Returns:
            True if the record was written
        """
        self._require_host("push_snapshot")
        now = self.scheduler.now_ms()
        if (
            not force
            and self._last_push_ms is not None
            and now - self._last_push_ms < self.config.push_interval_ms
        ):
            return False
        self._last_push_ms = now

        fields: dict[str, Any] = {}
        for pid, entity in snapshot.entities.items():
            fields[self._player_path(pid, "progress")] = min(100.0, max(0.0, entity.progress))
            fields[self._player_path(pid, "speed")] = entity.speed
            fields[self._player_path(pid, "last_update_ms")] = snapshot.timestamp_ms
        return self._try_write("push_snapshot", fields)

    def end_race(self, winner: RacingEntity | None, rankings: list[Ranking]) -> bool:
        """Write the final result and mark the room finished."""
        self._require_host("end_race")
        fields = {
            "status": "finished",
            "race/end_ms": self.scheduler.now_ms(),
            "race/winner": winner.model_dump(mode="json") if winner is not None else None,
            "race/rankings": [r.model_dump(mode="json") for r in rankings],
            "current_trivia": None,
        }
        ok = self._try_write("end_race", fields)
        if ok:
            logger.info(
                "Room %s finished, winner: %s", self.room_code, winner.id if winner else "none"
            )
        return ok

    def publish_question(self, issued: IssuedQuestion) -> bool:
        """Broadcast the active trivia question."""
        self._require_host("publish_question")
        return self._try_write("publish_question", {"current_trivia": issued.model_dump(mode="json")})

    # ---------- participant writes ----------

    def send_tap_input(self, tap_count: int) -> bool:
        """Publish the local player's tap count."""
        return self._try_write(
            "send_tap_input",
            {
                self._player_path(self.player_id, "tap_count"): tap_count,
                self._player_path(self.player_id, "last_tap_ms"): self.scheduler.now_ms(),
            },
        )

    def send_trivia_answer(self, question_id: str, answer_index: int, is_correct: bool) -> bool:
        """Publish the local player's answer to the active question."""
        answer = {
            "question_id": question_id,
            "answer_index": answer_index,
            "is_correct": is_correct,
            "answered_ms": self.scheduler.now_ms(),
        }
        return self._try_write(
            "send_trivia_answer", {self._player_path(self.player_id, "last_answer"): answer}
        )

    # ---------- presence and mirroring ----------

    def register_presence(self) -> None:
        """Mark the local player disconnected if its connection drops."""
        self.store.on_disconnect(
            f"{self.room_path}/{self._player_path(self.player_id)}", {"connected": False}
        )

    def subscribe(self, callback: Callable[[dict[str, Any] | None], None]) -> Unsubscribe:
        """Receive the whole room record now and after every change."""
        return self.store.subscribe(self.room_path, callback)

    def read_room(self) -> dict[str, Any] | None:
        return self.store.read(self.room_path)

    @staticmethod
    def roster_from_record(record: Mapping[str, Any] | None) -> dict[str, RacingEntity]:
        """Rebuild entities from a mirrored room record.

        Malformed player entries are skipped.
        """
        players = (record or {}).get("players") or {}
        roster: dict[str, RacingEntity] = {}
        for pid, data in players.items():
            if not isinstance(data, Mapping):
                continue
            try:
                roster[pid] = RacingEntity.model_validate({**data, "id": pid})
            except ValidationError as ex:
                logger.debug("Skipping malformed player %s: %s", pid, ex)
        return roster
