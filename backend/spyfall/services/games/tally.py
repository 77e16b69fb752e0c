from collections import Counter
from typing import Dict, Optional, Tuple

from spyfall.models import Game, NON_SPY_SIDE, SPY_SIDE

SPY_CAUGHT = 'spy_caught'
INNOCENT_ACCUSED = 'innocent_accused'
VOTE_TIE = 'vote_tie'


def count_votes(game: Game) -> Dict[str, int]:
    """Per-target vote counts for the current round."""
    return dict(Counter(p.voted_for for p in game.players.values() if p.has_voted and p.voted_for))


def all_votes_in(game: Game) -> bool:
    return bool(game.players) and game.votes_submitted() == len(game.players)


def resolve_votes(game: Game) -> Tuple[str, str, Optional[str]]:
    """Decide a finished vote.

    Returns ``(reason, winner, accused_id)``. Any tie for the highest count is
    a spy win, whatever the roster size; a sole leader is either the spy
    (non-spies win) or an innocent (spy wins).
    """
    counts = count_votes(game)
    if not counts:
        return VOTE_TIE, SPY_SIDE, None
    top = max(counts.values())
    leaders = [target for target, n in counts.items() if n == top]
    if len(leaders) > 1:
        return VOTE_TIE, SPY_SIDE, None
    accused = leaders[0]
    if accused == game.spy_id:
        return SPY_CAUGHT, NON_SPY_SIDE, accused
    return INNOCENT_ACCUSED, SPY_SIDE, accused
