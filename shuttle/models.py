import json
from shuttle.app import db
from shuttle.time_utils import utcnow_naive


def _safe_json(raw_value, fallback=None):
    if fallback is None:
        fallback = {}
    if not raw_value:
        return fallback
    try:
        return json.loads(raw_value)
    except (TypeError, ValueError):
        return fallback


class SessionSnapshot(db.Model):
    """Latest committed state of one rotation session, stored as JSON."""
    id = db.Column(db.Integer, primary_key=True)
    session_key = db.Column(db.String(120), unique=True, nullable=False, index=True)
    payload = db.Column(db.Text, nullable=False, default='{}')
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    @property
    def data(self):
        return _safe_json(self.payload)
