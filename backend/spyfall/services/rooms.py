"""Room registry: live rooms, who sits where, and connection bookkeeping.

One registry lives on each Flask app (``app.extensions['rooms']``). It owns
the room table, the session id -> room code index and the per-address
connection counters, all guarded by one lock. When a room's own lock is
needed as well, the registry lock is always taken first.
"""

import secrets
import threading
import time
from collections import Counter
from typing import Dict, List, NamedTuple, Optional, Tuple

from flask import current_app

from spyfall import socketio
from spyfall.errors import (
    AlreadyInRoom,
    ConnectionLimitExceeded,
    NameTaken,
    RoomFull,
    RoomNotFound,
    RoomNotJoinable,
)
from spyfall.events import NAMESPACE, PlayerLeft, PlayerView, RoomClosed, publish, roster_view
from spyfall.models import LOBBY, Game, Player
from spyfall.sanitize import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH, normalize_room_code, validate_name
from spyfall.services.games import handle_departure


class Departure(NamedTuple):
    game: Game
    player: Player
    room_destroyed: bool


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    return ''.join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))


class RoomRegistry:
    def __init__(self, app=None):
        self.app = None
        self._lock = threading.RLock()
        self._rooms: Dict[str, Game] = {}
        self._index: Dict[str, str] = {}
        self._addresses: Dict[str, str] = {}
        self._per_address: Counter = Counter()
        self._sweeper_started = False
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.app = app
        app.extensions['rooms'] = self

    def _config(self, key, default):
        return self.app.config.get(key, default) if self.app is not None else default

    def __len__(self) -> int:
        return len(self._rooms)

    # ---- Connection guard ----

    def register_connection(self, sid: str, address: Optional[str]) -> None:
        address = address or 'unknown'
        limit = int(self._config('MAX_CONNECTIONS_PER_ADDRESS', 10))
        with self._lock:
            if self._per_address[address] >= limit:
                raise ConnectionLimitExceeded()
            self._addresses[sid] = address
            self._per_address[address] += 1

    def release_connection(self, sid: str) -> None:
        with self._lock:
            address = self._addresses.pop(sid, None)
            if address is None:
                return
            self._per_address[address] -= 1
            if self._per_address[address] <= 0:
                del self._per_address[address]

    def connections_from(self, address: str) -> int:
        return self._per_address.get(address, 0)

    # ---- Lookups ----

    def get_room(self, raw_code) -> Game:
        code = normalize_room_code(raw_code)
        game = self._rooms.get(code)
        if game is None:
            raise RoomNotFound()
        return game

    def resolve_player(self, sid: str) -> Optional[Tuple[Game, Player]]:
        with self._lock:
            code = self._index.get(sid)
            game = self._rooms.get(code) if code else None
            player = game.players.get(sid) if game else None
            if player is None:
                return None
            return game, player

    def list_rooms(self) -> List[Game]:
        with self._lock:
            return list(self._rooms.values())

    # ---- Membership ----

    def _name(self, raw) -> str:
        return validate_name(
            raw,
            min_length=int(self._config('NAME_MIN_LENGTH', 2)),
            max_length=int(self._config('NAME_MAX_LENGTH', 20)),
        )

    def _new_code(self) -> str:
        while True:
            code = generate_room_code()
            if code not in self._rooms:
                return code

    def create_room(self, sid: str, raw_name) -> Tuple[Game, Player]:
        """Create a lobby with ``sid`` as its first player and host."""
        name = self._name(raw_name)
        with self._lock:
            if sid in self._index:
                raise AlreadyInRoom()
            game = Game(self._new_code())
            player = game.add_player(sid, name)
            self._rooms[game.code] = game
            self._index[sid] = game.code
        current_app.logger.info(f"[room-create] code={game.code} host={sid} name={name}")
        return game, player

    def join_room(self, sid: str, raw_code, raw_name) -> Tuple[Game, Player]:
        code = normalize_room_code(raw_code)
        name = self._name(raw_name)
        max_players = int(self._config('MAX_PLAYERS', 15))
        with self._lock:
            if sid in self._index:
                raise AlreadyInRoom()
            game = self._rooms.get(code)
            if game is None:
                raise RoomNotFound()
            with game.lock:
                if game.closed:
                    raise RoomNotFound()
                if game.phase != LOBBY:
                    raise RoomNotJoinable()
                if len(game.players) >= max_players:
                    raise RoomFull()
                if game.has_name(name):
                    raise NameTaken()
                player = game.add_player(sid, name)
                self._index[sid] = code
        current_app.logger.info(f"[room-join] code={code} sid={sid} name={name} players={len(game.players)}")
        return game, player

    def leave_room(self, sid: str) -> Optional[Departure]:
        """Remove ``sid`` from its room.

        Empty rooms are destroyed. Otherwise the room hears ``playerLeft``
        (with the possibly re-elected host) and a running round is kept
        consistent with the smaller roster.
        """
        with self._lock:
            code = self._index.pop(sid, None)
            game = self._rooms.get(code) if code else None
            if game is None:
                return None
            with game.lock:
                player = game.remove_player(sid)
                if player is None:
                    return None
                current_app.logger.info(
                    f"[room-leave] code={code} sid={sid} remaining={len(game.players)} host={game.host_id}"
                )
                if not game.players:
                    self._destroy(game, 'empty')
                    return Departure(game, player, True)
                publish(PlayerLeft(
                    player=PlayerView.of(player),
                    players=roster_view(game),
                    new_host=game.host_id,
                ), to=game.channel)
                handle_departure(game, player)
                return Departure(game, player, False)

    # ---- Teardown ----

    def _destroy(self, game: Game, reason: str) -> None:
        with game.lock:
            game.stop_countdown()
            game.closed = True
            self._rooms.pop(game.code, None)
            for sid in list(game.players):
                if self._index.get(sid) == game.code:
                    del self._index[sid]
            if game.players:
                publish(RoomClosed(room_code=game.code, reason=reason), to=game.channel)
            socketio.close_room(game.channel, namespace=NAMESPACE)
        current_app.logger.info(f"[room-destroy] code={game.code} reason={reason}")

    def close_room(self, raw_code, reason: str = 'closed') -> None:
        game = self.get_room(raw_code)
        with self._lock:
            self._destroy(game, reason)

    def sweep(self, now: Optional[float] = None) -> int:
        """Destroy rooms that are empty or older than ROOM_MAX_AGE_SEC."""
        now = time.monotonic() if now is None else now
        max_age = float(self._config('ROOM_MAX_AGE_SEC', 7200))
        removed = 0
        with self._lock:
            for game in list(self._rooms.values()):
                if not game.players:
                    self._destroy(game, 'empty')
                elif now - game.created_at > max_age:
                    self._destroy(game, 'expired')
                else:
                    continue
                removed += 1
        current_app.logger.info(f"[room-sweep] removed={removed} live={len(self._rooms)}")
        return removed

    def start_sweeper(self) -> None:
        if self._sweeper_started:
            return
        self._sweeper_started = True
        socketio.start_background_task(self._sweep_worker)

    def _sweep_worker(self) -> None:
        interval = int(self._config('ROOM_SWEEP_INTERVAL_SEC', 1800))
        while True:
            socketio.sleep(interval)
            with self.app.app_context():
                self.sweep()


def get_registry() -> RoomRegistry:
    return current_app.extensions['rooms']
