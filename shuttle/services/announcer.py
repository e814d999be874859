"""Court call-ups and session change notifications over Socket.IO."""
import logging

from shuttle.app import socketio
from shuttle.time_utils import utcnow_naive

logger = logging.getLogger(__name__)


class SocketAnnouncer:
    def announce(self, session_key, announcement):
        if not announcement.player_names:
            return
        payload = announcement.to_dict()
        payload['session_key'] = session_key
        socketio.emit('court_announcement', payload)

    def session_updated(self, session_key, reason=''):
        socketio.emit('session_update', {
            'session_key': session_key,
            'reason': reason,
            'updated_at': utcnow_naive().isoformat(),
        })


class NullAnnouncer:
    """Announcer that drops everything; used when broadcasting is switched off."""

    def announce(self, session_key, announcement):
        logger.debug('Announcement for %s suppressed: %s', session_key, announcement.message)

    def session_updated(self, session_key, reason=''):
        return None
