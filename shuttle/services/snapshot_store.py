"""Snapshot persistence for rotation sessions."""
import json

from sqlalchemy.exc import IntegrityError

from shuttle.app import db
from shuttle.engine.state import SessionState
from shuttle.models import SessionSnapshot
from shuttle.time_utils import utcnow_naive


class SqlSnapshotStore:
    """Load/save SessionState snapshots through Flask-SQLAlchemy.

    Needs an application context; the session registry opens one per call.
    """

    def load(self, session_key):
        row = SessionSnapshot.query.filter_by(session_key=session_key).first()
        if not row:
            return None
        return SessionState.from_dict(row.data)

    def _write(self, session_key, payload):
        row = SessionSnapshot.query.filter_by(session_key=session_key).first()
        if not row:
            row = SessionSnapshot(session_key=session_key)
            db.session.add(row)
        row.payload = payload
        row.updated_at = utcnow_naive()
        db.session.commit()

    def save(self, session_key, state):
        payload = json.dumps(state.to_dict())
        try:
            self._write(session_key, payload)
        except IntegrityError:
            # Another worker created the row first; update it instead.
            db.session.rollback()
            self._write(session_key, payload)

    def delete(self, session_key):
        SessionSnapshot.query.filter_by(session_key=session_key).delete()
        db.session.commit()
