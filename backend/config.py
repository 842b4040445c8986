import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///bluffmaster.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Comma-separated list of browser origins allowed to connect
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',') if o.strip()]
    # Room snapshots expire from the store after this many seconds
    ROOM_TTL_SEC = int(os.environ.get('ROOM_TTL_SEC', '86400'))
    # Pause before a bot acts so clients can follow along (seconds)
    BOT_MOVE_DELAY_SEC = float(os.environ.get('BOT_MOVE_DELAY_SEC', '1.5'))
    # How long a finished room lingers before it is discarded (seconds)
    GAME_OVER_CLEANUP_SEC = float(os.environ.get('GAME_OVER_CLEANUP_SEC', '5'))
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
