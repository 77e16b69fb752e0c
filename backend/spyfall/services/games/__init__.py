"""Game domain services: the round state machine, vote tally and countdown.

This package contains the per-room game logic used by the socket handlers,
keeping transport concerns separated from core game mechanics.
"""

from .engine import (
    call_vote,
    end_game,
    handle_departure,
    return_to_lobby,
    send_chat_message,
    spy_guess,
    start_game,
    submit_vote,
)
from .scheduler import Countdown
from .tally import resolve_votes
