"""Error taxonomy surfaced to clients as ``error`` events.

Every error carries a stable ``code`` (the class name) and a human readable
``message``. Raising one never leaves a room half-mutated: operations check
before they mutate.
"""


class GameError(Exception):
    message = 'Something went wrong'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self):
        return {'message': self.message, 'code': self.code}


# ---- Validation errors: bad input from the client ----

class ValidationError(GameError):
    message = 'Invalid input'


class InvalidName(ValidationError):
    message = 'Please enter a name (at least 2 characters)'


class InvalidRoomCode(ValidationError):
    message = 'Please enter a 4-character room code'


class InvalidPayload(ValidationError):
    message = 'Malformed request'


class InvalidTarget(ValidationError):
    message = 'That player is not in this room'


class SelfVote(ValidationError):
    message = 'You cannot vote for yourself'


class InvalidLocation(ValidationError):
    message = 'Unknown location'


class ChatCooldown(ValidationError):
    message = 'You are sending messages too fast'


# ---- State errors: the room is not in a state that allows the intent ----

class StateError(GameError):
    message = 'Not allowed right now'


class RoomNotFound(StateError):
    message = 'Room not found'


class RoomNotJoinable(StateError):
    message = 'Game already in progress'


class RoomFull(StateError):
    message = 'Room is full'


class NameTaken(StateError):
    message = 'Name already taken'


class NotInRoom(StateError):
    message = 'You are not in a room'


class AlreadyInRoom(StateError):
    message = 'You are already in a room'


class NotHost(StateError):
    message = 'Only the host can do that'


class NotSpy(StateError):
    message = 'Only the spy can guess the location'


class AlreadyStarted(StateError):
    message = 'Game has already started or is finished'


class InvalidPlayerCount(StateError):
    message = 'Game needs 4-15 players'


class GameNotInProgress(StateError):
    message = 'No round is in progress'


class GameNotEnded(StateError):
    message = 'The round is not over yet'


class VoteAlreadyCalled(StateError):
    message = 'Vote already called'


class AlreadyGuessed(StateError):
    message = 'You have already guessed this round'


# ---- Resource errors: the connection itself is refused ----

class ResourceError(GameError):
    message = 'Server busy'


class ConnectionLimitExceeded(ResourceError):
    message = 'Too many connections from this address'
