import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3001'))
    # Comma-separated list of origins allowed by the Socket.IO transport
    ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get('ALLOWED_ORIGINS', 'http://localhost:3000').split(',')
        if origin.strip()
    ]
    # Lobby capacity
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '8'))
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    # Seat reservation after a transport disconnect (seconds)
    DISCONNECT_GRACE_SEC = float(os.environ.get('DISCONNECT_GRACE_SEC', '30'))
    # Queens puzzle round (seconds)
    QUEENS_TIME_LIMIT_SEC = float(os.environ.get('QUEENS_TIME_LIMIT_SEC', '60'))
    QUEENS_TIMER_BUFFER_SEC = float(os.environ.get('QUEENS_TIMER_BUFFER_SEC', '1'))
    PUZZLE_MAX_ATTEMPTS = int(os.environ.get('PUZZLE_MAX_ATTEMPTS', '2000'))
    # Dead draw poker reveal pacing (seconds)
    DEAL_HOLE_CARD_SEC = float(os.environ.get('DEAL_HOLE_CARD_SEC', '0.5'))
    DEAL_FLOP_DELAY_SEC = float(os.environ.get('DEAL_FLOP_DELAY_SEC', '2'))
    DEAL_FLOP_CARD_SEC = float(os.environ.get('DEAL_FLOP_CARD_SEC', '0.8'))
    DEAL_TURN_DELAY_SEC = float(os.environ.get('DEAL_TURN_DELAY_SEC', '2'))
    DEAL_RIVER_DELAY_SEC = float(os.environ.get('DEAL_RIVER_DELAY_SEC', '2'))
    DEAL_REVEAL_DELAY_SEC = float(os.environ.get('DEAL_REVEAL_DELAY_SEC', '3'))
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = float(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
