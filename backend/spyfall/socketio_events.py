import functools

from flask import current_app, request
from flask_socketio import ConnectionRefusedError, emit, join_room, leave_room

from spyfall import socketio
from spyfall.errors import ConnectionLimitExceeded, GameError, NotInRoom
from spyfall.events import (
    NAMESPACE,
    CreateRoomIntent,
    ErrorEvent,
    JoinRoomIntent,
    PlayerJoined,
    PlayerView,
    RoomCreated,
    RoomJoined,
    SendMessageIntent,
    SpyGuessIntent,
    SubmitVoteIntent,
    publish,
    roster_view,
)
from spyfall.services import games
from spyfall.services.rooms import get_registry


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _resolve():
    found = get_registry().resolve_player(_get_sid())
    if found is None:
        raise NotInRoom()
    return found


def intent(handler):
    """Turn a GameError raised by an intent handler into an ``error`` event for the sender."""
    @functools.wraps(handler)
    def wrapper(*args):
        try:
            return handler(*args)
        except GameError as exc:
            current_app.logger.info(f"[intent-reject] sid={_get_sid()} intent={handler.__name__} code={exc.code}")
            publish(ErrorEvent(message=exc.message, code=exc.code), to=_get_sid())
    return wrapper


def handle_connect(auth=None):
    sid = _get_sid()
    address = request.remote_addr
    try:
        get_registry().register_connection(sid, address)
    except ConnectionLimitExceeded as exc:
        current_app.logger.warning(f"[conn-refused] sid={sid} address={address}")
        raise ConnectionRefusedError(exc.message)
    emit('connected', {'message': 'Connected to /ws', 'sid': sid})


def handle_disconnect(reason=None):
    sid = _get_sid()
    registry = get_registry()
    try:
        departure = registry.leave_room(sid)
    finally:
        registry.release_connection(sid)
    if departure:
        current_app.logger.info(f"[disconnect] sid={sid} room={departure.game.code}")


@intent
def handle_create_room(data=None):
    sid = _get_sid()
    payload = CreateRoomIntent.parse(data)
    game, player = get_registry().create_room(sid, payload.player_name)
    join_room(game.channel)
    with game.lock:
        publish(RoomCreated(
            room_code=game.code,
            player=PlayerView.of(player),
            players=roster_view(game),
        ), to=sid)


@intent
def handle_join_room(data=None):
    sid = _get_sid()
    payload = JoinRoomIntent.parse(data)
    game, player = get_registry().join_room(sid, payload.room_code, payload.player_name)
    join_room(game.channel)
    with game.lock:
        players = roster_view(game)
        publish(RoomJoined(room_code=game.code, player=PlayerView.of(player), players=players), to=sid)
        publish(PlayerJoined(player=PlayerView.of(player), players=players), to=game.channel, skip_sid=sid)


@intent
def handle_start_game(data=None):
    game, player = _resolve()
    games.start_game(game, player.id)


@intent
def handle_call_vote(data=None):
    game, player = _resolve()
    games.call_vote(game, player.id)


@intent
def handle_submit_vote(data=None):
    payload = SubmitVoteIntent.parse(data)
    game, player = _resolve()
    games.submit_vote(game, player.id, payload.target_id)


@intent
def handle_spy_guess(data=None):
    payload = SpyGuessIntent.parse(data)
    game, player = _resolve()
    games.spy_guess(game, player.id, payload.location)


@intent
def handle_send_message(data=None):
    payload = SendMessageIntent.parse(data)
    game, player = _resolve()
    games.send_chat_message(game, player.id, payload.text)


@intent
def handle_return_to_lobby(data=None):
    game, player = _resolve()
    games.return_to_lobby(game, player.id)


def handle_leave_room(data=None):
    found = get_registry().resolve_player(_get_sid())
    if found is None:
        return
    game, _ = found
    leave_room(game.channel)
    get_registry().leave_room(_get_sid())


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('createRoom', handle_create_room, namespace=NAMESPACE)
    socketio.on_event('joinRoom', handle_join_room, namespace=NAMESPACE)
    socketio.on_event('startGame', handle_start_game, namespace=NAMESPACE)
    socketio.on_event('callVote', handle_call_vote, namespace=NAMESPACE)
    socketio.on_event('submitVote', handle_submit_vote, namespace=NAMESPACE)
    socketio.on_event('spyGuess', handle_spy_guess, namespace=NAMESPACE)
    socketio.on_event('sendMessage', handle_send_message, namespace=NAMESPACE)
    socketio.on_event('returnToLobby', handle_return_to_lobby, namespace=NAMESPACE)
    socketio.on_event('leaveRoom', handle_leave_room, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
