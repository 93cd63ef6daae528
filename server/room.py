"""
Room management for multiplayer UNO games.

This module handles room creation, joining, reconnection and WebSocket
communication for game sessions.

A Room contains:
    - A unique 4-letter code for joining
    - The RoomPlayers in seat order (the first one is the host)
    - The current GameState once the host starts a game
    - A lock that serializes every change to that state
"""

import asyncio
import random
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from fastapi import WebSocket

from constants import (
    DEFAULT_TARGET_SCORE,
    MAX_NAME_LENGTH,
    MAX_PLAYERS,
    MIN_PLAYERS,
    ROOM_CODE_LENGTH,
    ROOM_MAX_AGE_MINUTES,
)
from errors import (
    GameInProgressError,
    NameTakenError,
    NotEnoughPlayersError,
    NotHostError,
    RoomFullError,
    RoomNotFoundError,
)
from game import (
    ActionResult,
    Clock,
    create_game,
    handle_disconnect,
    handle_reconnect,
    start_round,
    system_clock,
)
from logging_config import get_logger
from models.game_state import GamePhase, GameState

logger = get_logger(__name__)


class RoomStatus(str, Enum):
    """Lobby-level status of a room."""

    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


def clean_name(name: Optional[str]) -> str:
    """Trim a display name and cap its length. Blank names become "Player"."""
    name = (name or "").strip()[:MAX_NAME_LENGTH].strip()
    return name or "Player"


@dataclass
class RoomPlayer:
    """
    A player in a room (lobby-level representation).

    This is separate from models.game_state.Player: RoomPlayer tracks the
    connection and host status, Player tracks cards and score.

    Attributes:
        id: Player identifier (the connection ID they joined with).
        name: Display name.
        websocket: Live connection, or None while disconnected.
        is_host: Whether this player can start and reset games.
        connected: False while a mid-game player is away.
    """

    id: str
    name: str
    websocket: Optional[WebSocket] = None
    is_host: bool = False
    connected: bool = True


@dataclass
class Room:
    """
    A game room that hosts one UNO game at a time.

    Attributes:
        code: 4-letter room code for joining (e.g., "ABCD").
        players: RoomPlayers by ID, in join (seat) order.
        status: WAITING, PLAYING or FINISHED.
        state: Current GameState, None until a game starts.
        target_score: Points needed to win the game.
        created_at: Unix time the room was created, for cleanup.
        clock: Millisecond clock handed to time-sensitive actions.
        game_lock: Serializes reads and replacements of state.
    """

    code: str
    players: dict[str, RoomPlayer] = field(default_factory=dict)
    status: RoomStatus = RoomStatus.WAITING
    state: Optional[GameState] = None
    target_score: int = DEFAULT_TARGET_SCORE
    created_at: float = field(default_factory=time.time)
    clock: Clock = system_clock
    game_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def host_id(self) -> Optional[str]:
        for player in self.players.values():
            if player.is_host:
                return player.id
        return None

    def add_player(
        self,
        player_id: str,
        name: str,
        websocket: Optional[WebSocket] = None,
    ) -> RoomPlayer:
        """
        Add a player to the room.

        The first player to join becomes the host.

        Raises:
            GameInProgressError: A game is running.
            RoomFullError: The room already has MAX_PLAYERS players.
            NameTakenError: Another player has the same name (any case).
        """
        if self.status == RoomStatus.PLAYING:
            raise GameInProgressError()
        if len(self.players) >= MAX_PLAYERS:
            raise RoomFullError(f"Room is full (max {MAX_PLAYERS} players)")

        name = clean_name(name)
        if any(p.name.lower() == name.lower() for p in self.players.values()):
            raise NameTakenError()

        room_player = RoomPlayer(
            id=player_id,
            name=name,
            websocket=websocket,
            is_host=len(self.players) == 0,
        )
        self.players[player_id] = room_player
        return room_player

    def remove_player(self, player_id: str) -> Optional[RoomPlayer]:
        """
        Remove a player from the room, passing host to the next seat.

        Returns:
            The removed RoomPlayer, or None if not found.
        """
        room_player = self.players.pop(player_id, None)
        if room_player is None:
            return None

        if room_player.is_host and self.players:
            next(iter(self.players.values())).is_host = True

        return room_player

    def get_player(self, player_id: str) -> Optional[RoomPlayer]:
        return self.players.get(player_id)

    def is_empty(self) -> bool:
        return len(self.players) == 0

    def player_list(self) -> list[dict]:
        """Players for lobby display, in seat order."""
        return [
            {
                "id": p.id,
                "name": p.name,
                "is_host": p.is_host,
                "connected": p.connected,
            }
            for p in self.players.values()
        ]

    def lobby_info(self) -> dict:
        return {
            "room_code": self.code,
            "status": self.status.value,
            "host_id": self.host_id,
            "target_score": self.target_score,
            "players": self.player_list(),
        }

    # -------------------------------------------------------------------------
    # Game control (callers hold game_lock)
    # -------------------------------------------------------------------------

    def start_game(self, requester_id: str, seed: Optional[int] = None) -> ActionResult:
        """
        Start a game with everyone in the room, in seat order.

        Raises:
            NotHostError: Requester is not the host.
            NotEnoughPlayersError: Fewer than MIN_PLAYERS players.
            GameInProgressError: A game is already running.
        """
        room_player = self.players.get(requester_id)
        if room_player is None or not room_player.is_host:
            raise NotHostError("Only the host can start the game")
        if self.status == RoomStatus.PLAYING:
            raise GameInProgressError("Game already started")
        self._drop_disconnected()
        if len(self.players) < MIN_PLAYERS:
            raise NotEnoughPlayersError(f"Need at least {MIN_PLAYERS} players to start")

        roster = [{"id": p.id, "name": p.name} for p in self.players.values()]
        state = create_game(
            roster,
            target_score=self.target_score,
            room_code=self.code,
            host_id=requester_id,
            seed=seed,
        )
        result = start_round(state)
        self.state = result.state
        self.status = RoomStatus.PLAYING
        logger.with_context(room_code=self.code).info(f"Game started with {len(roster)} players")
        return result

    def apply(self, action: Callable[..., ActionResult], *args, **kwargs) -> ActionResult:
        """
        Run an engine action on the current state and keep the result.

        Rejections are stored too, since an expired catch attempt still
        closes the stale catch window.

        Raises:
            GameInProgressError: No game is running (message says so).
        """
        if self.state is None:
            raise GameInProgressError("No game in progress")

        result = action(self.state, *args, **kwargs)
        self.state = result.state
        if result.state.phase == GamePhase.GAME_OVER:
            self.status = RoomStatus.FINISHED
        return result

    def return_to_lobby(self, requester_id: str) -> None:
        """
        Drop the current game and go back to waiting for players.

        Raises:
            NotHostError: Requester is not the host.
        """
        room_player = self.players.get(requester_id)
        if room_player is None or not room_player.is_host:
            raise NotHostError("Only the host can return to the lobby")

        self.state = None
        self.status = RoomStatus.WAITING
        self._drop_disconnected()

    def _drop_disconnected(self) -> None:
        """Remove players who left a finished game without rejoining."""
        for player_id in [p.id for p in self.players.values() if not p.connected]:
            self.remove_player(player_id)

    # -------------------------------------------------------------------------
    # Messaging
    # -------------------------------------------------------------------------

    async def broadcast(self, message: dict, exclude: Optional[str] = None) -> None:
        """
        Send a message to every connected player in the room.

        Args:
            message: JSON-serializable message dict.
            exclude: Optional player ID to skip.
        """
        for player_id, player in list(self.players.items()):
            if player_id != exclude and player.websocket:
                await self._send(player, message)

    async def send_to(self, player_id: str, message: dict) -> None:
        player = self.players.get(player_id)
        if player and player.websocket:
            await self._send(player, message)

    async def _send(self, player: RoomPlayer, message: dict) -> None:
        try:
            await player.websocket.send_json(message)
        except Exception as e:
            # The socket's own receive loop handles the disconnect
            logger.debug(f"Send to {player.id} in room {self.code} failed: {e}")


class RoomManager:
    """
    Registry of all active rooms.

    Handles room codes, joining (including rejoining a game in progress by
    name), disconnects and periodic cleanup. The server uses one instance.
    """

    def __init__(self, clock: Clock = system_clock) -> None:
        self.rooms: dict[str, Room] = {}
        self.clock = clock
        # "name:ROOM" -> ID of a player who dropped out of a running game
        self.disconnected: dict[str, str] = {}

    @staticmethod
    def _reconnect_key(name: str, code: str) -> str:
        return f"{clean_name(name).lower()}:{code}"

    def _generate_code(self, max_attempts: int = 100) -> str:
        """Generate a unique room code."""
        for _ in range(max_attempts):
            code = "".join(random.choices(string.ascii_uppercase, k=ROOM_CODE_LENGTH))
            if code not in self.rooms:
                return code
        raise RuntimeError("Could not generate unique room code")

    def create_room(self, target_score: int = DEFAULT_TARGET_SCORE) -> Room:
        code = self._generate_code()
        room = Room(code=code, target_score=target_score, clock=self.clock)
        self.rooms[code] = room
        logger.info(f"Room {code} created")
        return room

    def get_room(self, code: str) -> Optional[Room]:
        """Get a room by its code (case-insensitive)."""
        return self.rooms.get((code or "").upper())

    def require_room(self, code: str) -> Room:
        """
        Like get_room(), but a missing room is an error.

        Raises:
            RoomNotFoundError: No room with that code.
        """
        room = self.get_room(code)
        if room is None:
            raise RoomNotFoundError()
        return room

    def remove_room(self, code: str) -> None:
        if self.rooms.pop(code, None) is not None:
            self.disconnected = {
                key: player_id
                for key, player_id in self.disconnected.items()
                if not key.endswith(f":{code}")
            }
            logger.info(f"Room {code} removed")

    def find_player_room(self, player_id: str) -> Optional[Room]:
        for room in self.rooms.values():
            if player_id in room.players:
                return room
        return None

    def join_room(
        self,
        room: Room,
        player_id: str,
        name: str,
        websocket: Optional[WebSocket] = None,
    ) -> bool:
        """
        Add a player to a room, or reattach them to their running game.

        While a game is running, a name that belongs to a disconnected
        player takes that player's seat under the new player_id.

        Returns:
            True if this was a reconnection.

        Raises:
            GameInProgressError: Game running and the name is not reclaimable.
            RoomFullError, NameTakenError: See Room.add_player().
        """
        if room.status != RoomStatus.WAITING:
            key = self._reconnect_key(name, room.code)
            old_player_id = self.disconnected.get(key)
            if old_player_id is None or old_player_id not in room.players:
                raise GameInProgressError()
            self._reconnect(room, key, old_player_id, player_id, websocket)
            return True

        room.add_player(player_id, name, websocket)
        return False


    def _reconnect(
        self,
        room: Room,
        key: str,
        old_player_id: str,
        new_player_id: str,
        websocket: Optional[WebSocket],
    ) -> None:
        room_player = room.players[old_player_id]
        room_player.id = new_player_id
        room_player.websocket = websocket
        room_player.connected = True

        # Re-key in place so seat order is kept
        room.players = {
            (new_player_id if pid == old_player_id else pid): p
            for pid, p in room.players.items()
        }

        if room.state is not None:
            room.apply(handle_reconnect, old_player_id, new_player_id)

        del self.disconnected[key]
        logger.with_context(room_code=room.code, player_id=new_player_id).info(
            f"{room_player.name} reconnected"
        )

    def leave_room(self, room: Room, player_id: str) -> Optional[RoomPlayer]:
        """
        Take a player out of a room (explicit leave or dropped connection).

        During a running game the player keeps their seat and is marked
        disconnected so they can rejoin by name. Otherwise they are removed,
        and an empty room is deleted.

        Returns:
            The RoomPlayer, or None if they were not in the room.
        """
        room_player = room.get_player(player_id)
        if room_player is None:
            return None

        if room.status == RoomStatus.PLAYING and room.state is not None:
            room_player.connected = False
            room_player.websocket = None
            room.apply(handle_disconnect, player_id)
            self.disconnected[self._reconnect_key(room_player.name, room.code)] = player_id
            logger.with_context(room_code=room.code, player_id=player_id).info(
                f"{room_player.name} disconnected mid-game"
            )
            return room_player

        room.remove_player(player_id)
        logger.info(f"{room_player.name} left room {room.code}")
        if room.is_empty():
            self.remove_room(room.code)
        return room_player

    def cleanup(self, max_age_minutes: int = ROOM_MAX_AGE_MINUTES, now: Optional[float] = None) -> list[str]:
        """
        Delete rooms older than max_age_minutes, unless a game is running.

        Returns:
            Codes of the removed rooms.
        """
        now = time.time() if now is None else now
        cutoff = max_age_minutes * 60
        stale = [
            code
            for code, room in self.rooms.items()
            if now - room.created_at > cutoff and room.status != RoomStatus.PLAYING
        ]
        for code in stale:
            self.remove_room(code)
        if stale:
            logger.info(f"Cleaned up {len(stale)} stale rooms")
        return stale

    def stats(self) -> dict:
        """Room and player counts for the metrics endpoint."""
        by_status = {status.value: 0 for status in RoomStatus}
        for room in self.rooms.values():
            by_status[room.status.value] += 1
        return {
            "total_rooms": len(self.rooms),
            "total_players": sum(len(room.players) for room in self.rooms.values()),
            "rooms_by_status": by_status,
        }
