"""Wire schemas for Socket.IO traffic.

Every client intent and every server broadcast has one pydantic model. Intents
are validated here before they reach the registry or a game; broadcasts are
serialized here with camelCase keys so the browser client sees a fixed shape
per event name.
"""

from typing import ClassVar, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from spyfall import socketio
from spyfall.errors import InvalidPayload
from spyfall.models import Game, Player

NAMESPACE = '/ws'


class Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- Intents (client -> server) ----

class Intent(Schema):
    # Field filled in when the client sends a bare string instead of an object
    scalar_field: ClassVar[Optional[str]] = None

    @classmethod
    def parse(cls, data):
        if cls.scalar_field and isinstance(data, str):
            data = {cls.scalar_field: data}
        try:
            return cls.model_validate(data if data is not None else {})
        except PydanticValidationError as exc:
            raise InvalidPayload() from exc


class CreateRoomIntent(Intent):
    scalar_field: ClassVar[Optional[str]] = 'player_name'
    player_name: str = Field(max_length=100)


class JoinRoomIntent(Intent):
    room_code: str = Field(max_length=16)
    player_name: str = Field(max_length=100)


class SubmitVoteIntent(Intent):
    scalar_field: ClassVar[Optional[str]] = 'target_id'
    target_id: str = Field(max_length=64)


class SpyGuessIntent(Intent):
    scalar_field: ClassVar[Optional[str]] = 'location'
    location: str = Field(max_length=100)


class SendMessageIntent(Intent):
    scalar_field: ClassVar[Optional[str]] = 'text'
    text: str = Field(max_length=2000)


# ---- Player views ----

class PlayerView(Schema):
    """A roster entry safe to show while a round is secret."""

    id: str
    name: str
    is_host: bool

    @classmethod
    def of(cls, player: Player) -> 'PlayerView':
        return cls(id=player.id, name=player.name, is_host=player.is_host)


class RevealedPlayer(PlayerView):
    role: Optional[str] = None
    voted_for: Optional[str] = None

    @classmethod
    def of(cls, player: Player) -> 'RevealedPlayer':
        return cls(
            id=player.id,
            name=player.name,
            is_host=player.is_host,
            role=player.role,
            voted_for=player.voted_for,
        )


def roster_view(game: Game) -> List[PlayerView]:
    return [PlayerView.of(p) for p in game.roster()]


# ---- Broadcasts (server -> client) ----

class Event(Schema):
    event: ClassVar[str]


class RoomCreated(Event):
    event: ClassVar[str] = 'roomCreated'
    room_code: str
    player: PlayerView
    players: List[PlayerView]


class RoomJoined(Event):
    event: ClassVar[str] = 'roomJoined'
    room_code: str
    player: PlayerView
    players: List[PlayerView]


class PlayerJoined(Event):
    event: ClassVar[str] = 'playerJoined'
    player: PlayerView
    players: List[PlayerView]


class PlayerLeft(Event):
    event: ClassVar[str] = 'playerLeft'
    player: PlayerView
    players: List[PlayerView]
    new_host: Optional[str] = None


class GameStarted(Event):
    event: ClassVar[str] = 'gameStarted'
    role: str
    location: Optional[str] = None
    players: List[PlayerView]
    timer: int
    locations: List[str]


class TimerUpdate(Event):
    event: ClassVar[str] = 'timerUpdate'
    seconds_remaining: int


class VoteStarted(Event):
    event: ClassVar[str] = 'voteStarted'
    players: List[PlayerView]


class VoteUpdate(Event):
    event: ClassVar[str] = 'voteUpdate'
    votes_submitted: int
    total_players: int


class GameEnded(Event):
    event: ClassVar[str] = 'gameEnded'
    reason: str
    winner: Optional[str] = None
    spy: Optional[RevealedPlayer] = None
    location: Optional[str] = None
    players: List[RevealedPlayer]


class ChatMessage(Event):
    event: ClassVar[str] = 'chatMessage'
    id: int
    sender_identity: str
    sender_name: str
    text: str
    timestamp: int
    kind: Literal['player', 'system']


class ReturnedToLobby(Event):
    event: ClassVar[str] = 'returnedToLobby'
    players: List[PlayerView]


class RoomClosed(Event):
    event: ClassVar[str] = 'roomClosed'
    room_code: str
    reason: str


class ErrorEvent(Event):
    event: ClassVar[str] = 'error'
    message: str
    code: str


# ---- HTTP views ----

class RoomSummary(Schema):
    room_code: str
    phase: str
    host: Optional[str] = None
    players: List[str]
    player_count: int

    @classmethod
    def of(cls, game: Game) -> 'RoomSummary':
        host = game.host
        roster = game.roster()
        return cls(
            room_code=game.code,
            phase=game.phase,
            host=host.name if host else None,
            players=[p.name for p in roster],
            player_count=len(roster),
        )


def publish(event: Event, to: str, skip_sid: Optional[str] = None) -> None:
    """Emit an event to a room channel or a single session id."""
    socketio.emit(
        event.event,
        event.model_dump(by_alias=True, mode='json'),
        to=to,
        skip_sid=skip_sid,
        namespace=NAMESPACE,
    )
