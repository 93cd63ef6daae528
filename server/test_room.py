"""
Test suite for Room and RoomManager.

Covers:
- Room creation and unique codes
- Joining: host election, capacity, duplicate names, name cleanup
- Starting games and applying actions
- Disconnect and rejoin by name during a game
- Stale room cleanup and stats
- Message broadcast and send_to

Run with: pytest test_room.py -v
"""

import pytest

from errors import (
    GameInProgressError,
    NameTakenError,
    NotEnoughPlayersError,
    NotHostError,
    RoomFullError,
    RoomNotFoundError,
)
from game import draw
from models.game_state import GamePhase
from room import Room, RoomManager, RoomStatus, clean_name


# =============================================================================
# Mock helpers
# =============================================================================

class MockWebSocket:
    """Mock WebSocket that collects sent messages."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)


class BrokenWebSocket:
    async def send_json(self, data: dict):
        raise RuntimeError("connection closed")


def room_with_players(count: int = 2) -> Room:
    room = Room(code="TEST")
    for i in range(count):
        room.add_player(f"p{i}", f"Player {i}", MockWebSocket())
    return room


# =============================================================================
# RoomManager
# =============================================================================

class TestRoomManagerCreate:

    def test_create_room_returns_room(self):
        rm = RoomManager()
        room = rm.create_room()
        assert len(room.code) == 4
        assert room.code in rm.rooms
        assert room.status == RoomStatus.WAITING

    def test_create_multiple_rooms_unique_codes(self):
        rm = RoomManager()
        codes = {rm.create_room().code for _ in range(20)}
        assert len(codes) == 20

    def test_get_room_case_insensitive(self):
        rm = RoomManager()
        room = rm.create_room()
        assert rm.get_room(room.code.lower()) is room

    def test_require_room_missing(self):
        with pytest.raises(RoomNotFoundError):
            RoomManager().require_room("ZZZZ")

    def test_find_player_room(self):
        rm = RoomManager()
        room = rm.create_room()
        room.add_player("p1", "Alice")
        assert rm.find_player_room("p1") is room
        assert rm.find_player_room("nobody") is None


# =============================================================================
# Joining
# =============================================================================

class TestRoomPlayers:

    def test_first_player_is_host(self):
        room = room_with_players(2)
        assert room.players["p0"].is_host
        assert not room.players["p1"].is_host
        assert room.host_id == "p0"

    def test_host_passes_on_leave(self):
        room = room_with_players(3)
        room.remove_player("p0")
        assert room.host_id == "p1"

    def test_duplicate_name_case_insensitive(self):
        room = Room(code="TEST")
        room.add_player("p1", "Alice")
        with pytest.raises(NameTakenError):
            room.add_player("p2", "  alice ")

    def test_room_full_at_ten(self):
        room = room_with_players(10)
        with pytest.raises(RoomFullError):
            room.add_player("p10", "Extra")

    def test_name_trimmed(self):
        assert clean_name("  Bob  ") == "Bob"
        assert clean_name("x" * 30) == "x" * 20
        assert clean_name("   ") == "Player"

    def test_lobby_info(self):
        info = room_with_players(2).lobby_info()
        assert info["room_code"] == "TEST"
        assert info["status"] == "waiting"
        assert [p["name"] for p in info["players"]] == ["Player 0", "Player 1"]


# =============================================================================
# Game control
# =============================================================================

class TestRoomGame:

    def test_start_game(self):
        room = room_with_players(3)
        result = room.start_game("p0", seed=5)
        assert result.ok
        assert room.status == RoomStatus.PLAYING
        assert room.state.phase == GamePhase.PLAYING
        assert [p.id for p in room.state.players] == ["p0", "p1", "p2"]

    def test_only_host_starts(self):
        room = room_with_players(2)
        with pytest.raises(NotHostError):
            room.start_game("p1")

    def test_needs_two_players(self):
        room = room_with_players(1)
        with pytest.raises(NotEnoughPlayersError):
            room.start_game("p0")

    def test_cannot_start_twice(self):
        room = room_with_players(2)
        room.start_game("p0")
        with pytest.raises(GameInProgressError):
            room.start_game("p0")

    def test_no_joining_mid_game(self):
        room = room_with_players(2)
        room.start_game("p0")
        with pytest.raises(GameInProgressError):
            room.add_player("p9", "Late")

    def test_apply_replaces_state(self):
        room = room_with_players(2)
        room.start_game("p0", seed=5)
        before = room.state
        current = before.current_player().id
        if before.awaiting_color_choice:
            pytest.skip("opening wild")

        result = room.apply(draw, current)
        assert result.ok
        assert room.state is result.state
        assert room.state is not before

    def test_return_to_lobby(self):
        room = room_with_players(2)
        room.start_game("p0")
        with pytest.raises(NotHostError):
            room.return_to_lobby("p1")

        room.return_to_lobby("p0")
        assert room.status == RoomStatus.WAITING
        assert room.state is None


# =============================================================================
# Disconnect / rejoin
# =============================================================================

class TestRoomManagerJoin:

    def setup_method(self):
        self.rm = RoomManager()
        self.room = self.rm.create_room()
        self.rm.join_room(self.room, "a", "Alice", MockWebSocket())
        self.rm.join_room(self.room, "b", "Bob", MockWebSocket())

    def test_leave_waiting_room_removes_player(self):
        self.rm.leave_room(self.room, "b")
        assert "b" not in self.room.players

    def test_last_player_leaving_deletes_room(self):
        self.rm.leave_room(self.room, "a")
        self.rm.leave_room(self.room, "b")
        assert self.room.code not in self.rm.rooms

    def test_disconnect_mid_game_keeps_seat(self):
        self.room.start_game("a")
        self.rm.leave_room(self.room, "b")

        assert "b" in self.room.players
        assert self.room.players["b"].connected is False
        assert self.room.state.get_player("b").connected is False

    def test_rejoin_by_name(self):
        self.room.start_game("a")
        hand_ids = [c.id for c in self.room.state.get_player("b").hand]
        self.rm.leave_room(self.room, "b")

        reconnected = self.rm.join_room(self.room, "b2", "BOB", MockWebSocket())
        assert reconnected
        assert list(self.room.players) == ["a", "b2"]
        assert self.room.players["b2"].connected
        game_player = self.room.state.get_player("b2")
        assert game_player is not None
        assert [c.id for c in game_player.hand] == hand_ids

    def test_unknown_name_cannot_join_running_game(self):
        self.room.start_game("a")
        with pytest.raises(GameInProgressError):
            self.rm.join_room(self.room, "c", "Cara", MockWebSocket())

    def test_host_rejoin_keeps_host(self):
        self.room.start_game("a")
        self.rm.leave_room(self.room, "a")
        self.rm.join_room(self.room, "a2", "Alice", MockWebSocket())
        assert self.room.host_id == "a2"
        assert self.room.state.host_id == "a2"


# =============================================================================
# Cleanup / stats
# =============================================================================

class TestCleanup:

    def test_removes_old_idle_rooms(self):
        rm = RoomManager()
        old = rm.create_room()
        old.created_at = 0
        fresh = rm.create_room()
        fresh.created_at = 10_000

        removed = rm.cleanup(max_age_minutes=120, now=10_000 + 60)
        assert removed == [old.code]
        assert fresh.code in rm.rooms

    def test_keeps_rooms_with_game_in_progress(self):
        rm = RoomManager()
        room = rm.create_room()
        room.created_at = 0
        room.status = RoomStatus.PLAYING
        assert rm.cleanup(max_age_minutes=1, now=1_000_000) == []

    def test_stats(self):
        rm = RoomManager()
        first = rm.create_room()
        first.add_player("a", "Alice")
        first.add_player("b", "Bob")
        second = rm.create_room()
        second.add_player("c", "Cara")
        second.status = RoomStatus.FINISHED

        stats = rm.stats()
        assert stats["total_rooms"] == 2
        assert stats["total_players"] == 3
        assert stats["rooms_by_status"] == {"waiting": 1, "playing": 0, "finished": 1}


# =============================================================================
# Messaging
# =============================================================================

class TestRoomMessaging:

    @pytest.mark.asyncio
    async def test_broadcast_to_all(self):
        room = room_with_players(3)
        await room.broadcast({"type": "ping"})
        for player in room.players.values():
            assert player.websocket.messages == [{"type": "ping"}]

    @pytest.mark.asyncio
    async def test_broadcast_exclude(self):
        room = room_with_players(2)
        await room.broadcast({"type": "ping"}, exclude="p0")
        assert room.players["p0"].websocket.messages == []
        assert len(room.players["p1"].websocket.messages) == 1

    @pytest.mark.asyncio
    async def test_send_to(self):
        room = room_with_players(2)
        await room.send_to("p1", {"type": "hello"})
        assert room.players["p1"].websocket.messages == [{"type": "hello"}]
        assert room.players["p0"].websocket.messages == []

    @pytest.mark.asyncio
    async def test_broken_socket_does_not_stop_broadcast(self):
        room = room_with_players(2)
        room.players["p0"].websocket = BrokenWebSocket()
        await room.broadcast({"type": "ping"})
        assert room.players["p1"].websocket.messages == [{"type": "ping"}]
