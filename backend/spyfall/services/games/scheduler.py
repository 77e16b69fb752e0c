import threading
from typing import Callable

from spyfall import socketio
from spyfall.events import TimerUpdate, publish
from spyfall.models import Game


class Countdown:
    """Cancellable one-second round clock for a single game.

    - Stored on ``game.countdown`` while it runs; ``None`` means no clock
    - Broadcasts ``timerUpdate`` every tick
    - Calls ``on_expire(game)`` once when the clock reaches zero
    - No background task in TESTING mode; tests drive ``tick()`` directly
    """

    def __init__(self, app, game: Game, on_expire: Callable[[Game], None]):
        self.app = app
        self.game = game
        self.round = game.round
        self._on_expire = on_expire
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        if not self._cancelled.is_set():
            self._cancelled.set()
            self.app.logger.info(
                f"[timer-cancel] room={self.game.code} round={self.round} remaining={self.game.seconds_remaining}s"
            )

    def start(self) -> None:
        self.app.logger.info(
            f"[timer-set] room={self.game.code} round={self.round} duration={self.game.seconds_remaining}s"
        )
        if self.app.config.get('TESTING') and not self.app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
            return
        socketio.start_background_task(self._run)

    def _run(self) -> None:
        while not self.cancelled:
            socketio.sleep(1)
            with self.app.app_context():
                if not self.tick():
                    return

    def tick(self) -> bool:
        """Advance the clock by one second. Returns False once it has stopped."""
        game = self.game
        with game.lock:
            if self.cancelled or game.closed or game.countdown is not self:
                return False
            game.seconds_remaining = max(0, game.seconds_remaining - 1)
            publish(TimerUpdate(seconds_remaining=game.seconds_remaining), to=game.channel)

            hb = int(self.app.config.get('TIMER_HEARTBEAT_SEC', 0))
            if hb > 0 and game.seconds_remaining % hb == 0:
                self.app.logger.info(
                    f"[timer-heartbeat] room={game.code} round={self.round} remaining={game.seconds_remaining}s"
                )

            if game.seconds_remaining == 0:
                self.app.logger.info(f"[timer-fire] room={game.code} round={self.round} phase={game.phase}")
                self._on_expire(game)
                return False
            return True
