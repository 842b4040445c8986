import time

from bluffmaster import db


class RoomSnapshot(db.Model):
    """Durable copy of one room's state, keyed by room code, with an absolute expiry."""
    __tablename__ = 'room_snapshot'
    code = db.Column(db.String(32), primary_key=True)
    payload = db.Column(db.Text, nullable=False)  # JSON-encoded Room
    expires_at = db.Column(db.Float, nullable=False, index=True)
    updated_at = db.Column(db.Float, nullable=False, default=time.time)

    def is_expired(self, now=None):
        return self.expires_at <= (now if now is not None else time.time())

    def to_dict(self):
        return {
            'code': self.code,
            'expires_at': self.expires_at,
            'updated_at': self.updated_at,
        }
