import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of browser origins allowed to open the socket
    CORS_ORIGINS = os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000',
    )
    # Round countdown (seconds)
    ROUND_DURATION_SEC = int(os.environ.get('ROUND_DURATION_SEC', '480'))
    # Roster bounds enforced on join and start
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '4'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '15'))
    # Display names
    NAME_MIN_LENGTH = int(os.environ.get('NAME_MIN_LENGTH', '2'))
    NAME_MAX_LENGTH = int(os.environ.get('NAME_MAX_LENGTH', '20'))
    # Chat
    CHAT_MAX_LENGTH = int(os.environ.get('CHAT_MAX_LENGTH', '200'))
    CHAT_COOLDOWN_SEC = float(os.environ.get('CHAT_COOLDOWN_SEC', '3'))
    # Idle eviction: rooms older than this are destroyed by the sweeper
    ROOM_MAX_AGE_SEC = int(os.environ.get('ROOM_MAX_AGE_SEC', '7200'))
    ROOM_SWEEP_INTERVAL_SEC = int(os.environ.get('ROOM_SWEEP_INTERVAL_SEC', '1800'))
    # Simultaneous socket connections allowed per remote address
    MAX_CONNECTIONS_PER_ADDRESS = int(os.environ.get('MAX_CONNECTIONS_PER_ADDRESS', '10'))
    # Optional: heartbeat interval for countdown logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
