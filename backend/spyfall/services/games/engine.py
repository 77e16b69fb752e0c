import secrets
import time
from typing import Optional

from flask import current_app

from spyfall.errors import (
    AlreadyGuessed,
    AlreadyStarted,
    ChatCooldown,
    GameNotEnded,
    GameNotInProgress,
    InvalidLocation,
    InvalidPlayerCount,
    InvalidTarget,
    NotHost,
    NotInRoom,
    NotSpy,
    RoomNotFound,
    SelfVote,
    VoteAlreadyCalled,
)
from spyfall.events import (
    ChatMessage,
    GameEnded,
    GameStarted,
    ReturnedToLobby,
    RevealedPlayer,
    VoteStarted,
    VoteUpdate,
    publish,
    roster_view,
)
from spyfall.locations import is_location, random_location, sorted_locations
from spyfall.models import (
    ENDED,
    LOBBY,
    NON_SPY,
    NON_SPY_SIDE,
    PLAYING,
    SPY,
    SPY_SIDE,
    VOTING,
    Game,
    Player,
)
from spyfall.sanitize import sanitize_chat
from .scheduler import Countdown
from .tally import all_votes_in, resolve_votes

TIMEOUT = 'timeout'
SPY_GUESSED = 'spy_guessed'
SPY_WRONG_GUESS = 'spy_wrong_guess'
SPY_LEFT = 'spy_left'
NOT_ENOUGH_PLAYERS = 'not_enough_players'


def _live_member(game: Game, sid: str) -> Player:
    if game.closed:
        raise RoomNotFound()
    player = game.players.get(sid)
    if player is None:
        raise NotInRoom()
    return player


def _system_message(game: Game, text: str) -> ChatMessage:
    message_id, timestamp = game.next_message_stamp()
    message = ChatMessage(
        id=message_id,
        sender_identity='system',
        sender_name='System',
        text=text,
        timestamp=timestamp,
        kind='system',
    )
    publish(message, to=game.channel)
    return message


def start_game(game: Game, sid: str) -> None:
    """Deal roles and a location, then start the round clock.

    The phase flips to ``playing`` before anything else changes, so a second
    start request for the same room always sees ``AlreadyStarted``.
    """
    config = current_app.config
    with game.lock:
        _live_member(game, sid)
        if sid != game.host_id:
            raise NotHost('Only host can start the game')
        if game.phase != LOBBY:
            raise AlreadyStarted()
        min_players = int(config.get('MIN_PLAYERS', 4))
        max_players = int(config.get('MAX_PLAYERS', 15))
        if not min_players <= len(game.players) <= max_players:
            raise InvalidPlayerCount(f'Game needs {min_players}-{max_players} players')

        game.phase = PLAYING
        game.round += 1
        game.vote_called = False
        game.seconds_remaining = int(config.get('ROUND_DURATION_SEC', 480))

        roster = game.roster()
        for player in roster:
            player.reset_round()
        spy = roster[secrets.randbelow(len(roster))]
        game.spy_id = spy.id
        for player in roster:
            player.role = SPY if player is spy else NON_SPY
        game.location = random_location()

        current_app.logger.info(
            f"[round-start] room={game.code} round={game.round} players={len(roster)} timer={game.seconds_remaining}s"
        )

        players = roster_view(game)
        locations = sorted_locations()
        for player in roster:
            publish(GameStarted(
                role=player.role,
                location=None if player.role == SPY else game.location,
                players=players,
                timer=game.seconds_remaining,
                locations=locations,
            ), to=player.id)

        minutes = game.seconds_remaining // 60
        _system_message(
            game,
            f'Game started! You have {minutes} minutes to find the spy. '
            'Ask questions, discuss, and stay alert!',
        )

        game.countdown = Countdown(current_app._get_current_object(), game, on_expire=_expire_round)
        game.countdown.start()


def _expire_round(game: Game) -> None:
    if game.phase == PLAYING:
        end_game(game, TIMEOUT, SPY_SIDE)


def call_vote(game: Game, sid: str) -> None:
    """Stop the clock and open the vote. Any player may call it, once per round."""
    with game.lock:
        _live_member(game, sid)
        if game.vote_called:
            raise VoteAlreadyCalled()
        if game.phase != PLAYING:
            raise GameNotInProgress()
        game.phase = VOTING
        game.vote_called = True
        game.stop_countdown()
        current_app.logger.info(f"[vote-call] room={game.code} round={game.round} caller={sid}")
        publish(VoteStarted(players=roster_view(game)), to=game.channel)


def submit_vote(game: Game, sid: str, target_id: str) -> bool:
    """Record a vote. Returns False when the voter already voted this round."""
    with game.lock:
        voter = _live_member(game, sid)
        if game.phase != VOTING:
            raise GameNotInProgress('No vote is in progress')
        if voter.has_voted:
            return False
        if target_id not in game.players:
            raise InvalidTarget()
        if target_id == sid:
            raise SelfVote()

        voter.has_voted = True
        voter.voted_for = target_id
        publish(VoteUpdate(
            votes_submitted=game.votes_submitted(),
            total_players=len(game.players),
        ), to=game.channel)

        if all_votes_in(game):
            _resolve_vote(game)
        return True


def _resolve_vote(game: Game) -> None:
    reason, winner, accused = resolve_votes(game)
    current_app.logger.info(
        f"[vote-resolve] room={game.code} round={game.round} reason={reason} accused={accused}"
    )
    end_game(game, reason, winner)


def spy_guess(game: Game, sid: str, location: str) -> None:
    """The spy names the location; right or wrong, the round is over."""
    with game.lock:
        guesser = _live_member(game, sid)
        if guesser.has_guessed:
            raise AlreadyGuessed()
        if game.phase != PLAYING:
            raise GameNotInProgress()
        if guesser.role != SPY:
            raise NotSpy()
        guess = (location or '').strip()
        if not is_location(guess):
            raise InvalidLocation()

        guesser.has_guessed = True
        if guess == game.location:
            end_game(game, SPY_GUESSED, SPY_SIDE)
        else:
            end_game(game, SPY_WRONG_GUESS, NON_SPY_SIDE)


def end_game(game: Game, reason: str, winner: Optional[str] = None, spy: Optional[Player] = None) -> GameEnded:
    """Stop the clock, reveal the spy and the location to everyone in the room.

    ``spy`` is passed when the spy is no longer on the roster.
    """
    with game.lock:
        game.stop_countdown()
        game.phase = ENDED
        spy = spy or game.spy
        result = GameEnded(
            reason=reason,
            winner=winner,
            spy=RevealedPlayer.of(spy) if spy else None,
            location=game.location,
            players=[RevealedPlayer.of(p) for p in game.roster()],
        )
        current_app.logger.info(
            f"[round-end] room={game.code} round={game.round} reason={reason} winner={winner}"
        )
        publish(result, to=game.channel)
        return result


def send_chat_message(game: Game, sid: str, text: str) -> Optional[ChatMessage]:
    """Broadcast a player's chat line. Returns None when nothing was left to send."""
    config = current_app.config
    with game.lock:
        sender = _live_member(game, sid)
        if game.phase != PLAYING:
            raise GameNotInProgress('Chat is only open during a round')
        cleaned = sanitize_chat(text, max_length=int(config.get('CHAT_MAX_LENGTH', 200)))
        if not cleaned:
            return None

        now = time.monotonic()
        cooldown = float(config.get('CHAT_COOLDOWN_SEC', 3))
        if sender.last_message_at is not None and now - sender.last_message_at < cooldown:
            raise ChatCooldown(f'Please wait {cooldown:g} seconds between messages')
        sender.last_message_at = now

        message_id, timestamp = game.next_message_stamp()
        message = ChatMessage(
            id=message_id,
            sender_identity=sender.id,
            sender_name=sender.name,
            text=cleaned,
            timestamp=timestamp,
            kind='player',
        )
        publish(message, to=game.channel)
        return message


def return_to_lobby(game: Game, sid: str) -> None:
    """Host sends a finished room back to the lobby so a new round can start."""
    with game.lock:
        _live_member(game, sid)
        if sid != game.host_id:
            raise NotHost('Only the host can start a new game')
        if game.phase != ENDED:
            raise GameNotEnded()
        game.stop_countdown()
        game.phase = LOBBY
        game.spy_id = None
        game.location = None
        game.vote_called = False
        game.seconds_remaining = 0
        for player in game.players.values():
            player.reset_round()
        current_app.logger.info(f"[lobby-return] room={game.code} after round={game.round}")
        publish(ReturnedToLobby(players=roster_view(game)), to=game.channel)


def handle_departure(game: Game, player: Player) -> None:
    """Keep a running round consistent after ``player`` left a non-empty room."""
    with game.lock:
        if game.phase not in (PLAYING, VOTING):
            return
        if player.id == game.spy_id:
            end_game(game, SPY_LEFT, NON_SPY_SIDE, spy=player)
            return
        if len(game.players) < int(current_app.config.get('MIN_PLAYERS', 4)):
            end_game(game, NOT_ENOUGH_PLAYERS, None)
            return
        if game.phase == VOTING:
            publish(VoteUpdate(
                votes_submitted=game.votes_submitted(),
                total_players=len(game.players),
            ), to=game.channel)
            if all_votes_in(game):
                _resolve_vote(game)
