"""
Socket Event Decorators

Contains decorators shared by the WebSocket event handlers.
"""

from functools import wraps
from flask import request
from flask_socketio import emit
from .game_logger import game_logger


def game_session_required(f):
    """
    Decorator for events that act on the caller's game session.

    Looks up the session of the connecting socket, logs the event, and runs
    the handler as handler(payload, machine) while holding the session lock,
    so input events never interleave with timer callbacks. Invalid payload
    values (ValueError) are reported back as an 'error' event.
    """
    action = f.__name__.replace('handle_', '', 1)

    @wraps(f)
    def decorated_function(data=None):
        from ..services.game_service import get_game_service

        game_service = get_game_service()
        if not game_service:
            emit('error', {'error': 'Game service unavailable'})
            return

        session = game_service.get_session(request.sid)
        if session is None:
            emit('error', {'error': 'Join a game first'})
            return

        payload = data if isinstance(data, dict) else {}
        game_logger.log_socket_action(request.sid, action, payload=payload)

        with session.lock:
            try:
                return f(payload, session.machine)
            except ValueError as e:
                emit('error', {'error': str(e), 'action': action})

    return decorated_function
