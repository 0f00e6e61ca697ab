"""
OCGP Lobby Client - Room State Store

Holds the one authoritative RoomSnapshot and detects the two edges
the UI announces: "your turn" and "match finished". Snapshots are
re-delivered on every poll and push, so both notifications compare
against the previous application instead of the current level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from lobby_client.api.models import RoomSnapshot, RoomStatus
from lobby_client.games import GameAdapter, create_adapter
from lobby_client.realtime.events import MatchOutcome

logger = logging.getLogger(__name__)


@dataclass
class PreviousStatusMemory:
    """What the last applied snapshot said, for edge detection."""

    last_status: str | None = None
    last_current_player_id: str | None = None


@dataclass(frozen=True)
class ApplyResult:
    """What happened when a snapshot was offered to the store."""

    applied: bool
    player_changed: bool = False
    turn_started: bool = False
    outcome: MatchOutcome | None = None


STALE = ApplyResult(applied=False)


def describe_status(room: RoomSnapshot | None) -> str:
    """Short status line for a room."""
    if room is None or not room.started:
        return "Waiting to start"
    if room.effective_status == RoomStatus.FINISHED:
        return "Finished"
    return "In progress"


def match_outcome(
    room: RoomSnapshot, user_id: str | None, adapter: GameAdapter
) -> MatchOutcome:
    """Outcome of a finished room for ``user_id``. A draw beats a winner id."""
    if room.is_draw:
        return MatchOutcome(result="draw")

    winner_id = room.resolved_winner_id
    if winner_id is None:
        return MatchOutcome(result="draw")

    if user_id not in room.player_ids:
        result = "spectator"
    elif winner_id == user_id:
        result = "won"
    else:
        result = "lost"

    return MatchOutcome(
        result=result,
        winner_id=winner_id,
        winner_name=room.username_of(winner_id),
        winner_seat_label=adapter.seat_label(room.seat_of(winner_id)),
    )


class RoomStore:
    """Single owner of the room snapshot while a room is open.

    Every snapshot is tagged with a sequence number issued when its
    request went out (or when a push frame arrived). A snapshot older
    than the one already applied is dropped.
    """

    def __init__(self, user_id: str | None, adapter: GameAdapter | None = None) -> None:
        self.user_id = user_id
        self.adapter = adapter
        self.snapshot: RoomSnapshot | None = None
        self.memory = PreviousStatusMemory()
        self._issued = 0
        self._applied = 0

    @property
    def applied_sequence(self) -> int:
        return self._applied

    def issue_sequence(self) -> int:
        self._issued += 1
        return self._issued

    def apply(self, snapshot: RoomSnapshot, sequence: int | None = None) -> ApplyResult:
        """Replace the snapshot and report which edges fired."""
        if sequence is None:
            sequence = self.issue_sequence()
        if sequence < self._applied:
            logger.debug(
                "Dropping stale snapshot for room %s (seq %d < %d)",
                snapshot.id, sequence, self._applied,
            )
            return STALE

        if self.adapter is None or (
            self.snapshot is not None and self.snapshot.game_type != snapshot.game_type
        ):
            self.adapter = create_adapter(snapshot.game_type)

        self._applied = sequence
        self.snapshot = snapshot
        previous = self.memory

        current_status = snapshot.effective_status
        outcome = None
        if current_status == RoomStatus.FINISHED and previous.last_status != RoomStatus.FINISHED:
            outcome = match_outcome(snapshot, self.user_id, self.adapter)
            logger.info("Room %s finished: %s", snapshot.id, outcome.result)

        is_my_turn_now = (
            snapshot.started
            and current_status == RoomStatus.IN_PROGRESS
            and self.user_id is not None
            and snapshot.current_player_id == self.user_id
        )
        turn_started = is_my_turn_now and previous.last_current_player_id != self.user_id
        player_changed = snapshot.current_player_id != previous.last_current_player_id

        self.memory = PreviousStatusMemory(
            last_status=current_status,
            last_current_player_id=snapshot.current_player_id,
        )
        return ApplyResult(
            applied=True,
            player_changed=player_changed,
            turn_started=turn_started,
            outcome=outcome,
        )
