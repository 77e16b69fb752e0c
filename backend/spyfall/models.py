import itertools
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

# Phases
LOBBY = 'lobby'
PLAYING = 'playing'
VOTING = 'voting'
ENDED = 'ended'

# Roles
SPY = 'spy'
NON_SPY = 'non-spy'

# Winning sides
SPY_SIDE = 'spy'
NON_SPY_SIDE = 'non-spies'


def room_channel(code: str) -> str:
    """Socket.IO room name for a game code."""
    return f"room:{code}"


@dataclass
class Player:
    id: str  # Socket.IO session id of the owning connection
    name: str
    seq: int  # join order inside the room, used for host re-election
    is_host: bool = False
    role: Optional[str] = None
    has_voted: bool = False
    voted_for: Optional[str] = None
    has_guessed: bool = False
    last_message_at: Optional[float] = None

    def reset_round(self) -> None:
        self.role = None
        self.has_voted = False
        self.voted_for = None
        self.has_guessed = False
        self.last_message_at = None


class Game:
    """State of one room. Mutate only while holding ``lock``."""

    def __init__(self, code: str, created_at: Optional[float] = None):
        self.code = code
        self.phase = LOBBY
        self.players: Dict[str, Player] = {}
        self.host_id: Optional[str] = None
        self.location: Optional[str] = None
        self.spy_id: Optional[str] = None
        self.seconds_remaining = 0
        self.vote_called = False
        self.round = 0
        self.countdown = None  # scheduler.Countdown while a round clock runs
        self.created_at = time.monotonic() if created_at is None else created_at
        self.closed = False
        self.lock = threading.RLock()
        self._join_seq = itertools.count()
        self._message_ids = itertools.count(1)
        self._last_message_ms = 0

    @property
    def channel(self) -> str:
        return room_channel(self.code)

    @property
    def host(self) -> Optional[Player]:
        return self.players.get(self.host_id) if self.host_id else None

    @property
    def spy(self) -> Optional[Player]:
        return self.players.get(self.spy_id) if self.spy_id else None

    def roster(self) -> List[Player]:
        return sorted(self.players.values(), key=lambda p: p.seq)

    def has_name(self, name: str) -> bool:
        return any(p.name == name for p in self.players.values())

    def add_player(self, sid: str, name: str) -> Player:
        player = Player(id=sid, name=name, seq=next(self._join_seq))
        if self.host_id is None:
            self.host_id = sid
            player.is_host = True
        self.players[sid] = player
        return player

    def remove_player(self, sid: str) -> Optional[Player]:
        """Drop a player; promote the earliest remaining member if the host left."""
        player = self.players.pop(sid, None)
        if player is None:
            return None
        if sid == self.host_id:
            self.host_id = None
            remaining = self.roster()
            if remaining:
                remaining[0].is_host = True
                self.host_id = remaining[0].id
        return player

    def votes_submitted(self) -> int:
        return sum(1 for p in self.players.values() if p.has_voted)

    def stop_countdown(self) -> None:
        """Cancel the round clock if one is running. Safe to call repeatedly."""
        countdown, self.countdown = self.countdown, None
        if countdown is not None:
            countdown.cancel()

    def next_message_stamp(self):
        """Return a per-room message id and a strictly increasing epoch-ms timestamp."""
        now_ms = int(time.time() * 1000)
        self._last_message_ms = max(now_ms, self._last_message_ms + 1)
        return next(self._message_ids), self._last_message_ms
