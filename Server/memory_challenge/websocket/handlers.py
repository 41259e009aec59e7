"""
WebSocket Event Handlers

The browser is the presentation layer: it sends discrete input events and
renders the 'game_state' snapshot pushed after every change.
"""

from flask import request
from flask_socketio import emit
from ..services.game_service import get_game_service
from ..utils.decorators import game_session_required
from ..utils.game_logger import game_logger


def register_websocket_handlers(socketio):
    """Register all WebSocket event handlers."""

    def listener_for(session_id):
        def listener(event, payload):
            socketio.emit(event, payload, to=session_id)
        return listener

    @socketio.on('connect')
    def handle_connect():
        """Handle WebSocket connection."""
        pass

    @socketio.on('disconnect')
    def handle_disconnect(*args):
        """Tear down the session so no timer outlives the connection."""
        game_service = get_game_service()
        if game_service and game_service.end_session(request.sid):
            game_logger.logger.info(f"WebSocket: session {request.sid} closed")

    @socketio.on('join_game')
    def handle_join_game(data=None):
        """Create the caller's game session and send the initial state."""
        game_service = get_game_service()
        if not game_service:
            emit('error', {'error': 'Game service unavailable'})
            return

        profile_id = data.get('profile_id') if isinstance(data, dict) else None
        game_logger.log_socket_action(request.sid, 'join_game', profile_id=profile_id)

        try:
            session = game_service.create_session(request.sid, profile_id, listener_for(request.sid))
        except ValueError as e:
            emit('error', {'error': str(e), 'action': 'join_game'})
            return

        with session.lock:
            machine = session.machine
            emit('game_state', machine.snapshot_dict())
            if machine.storage_warning:
                emit('storage_warning', {'warning': machine.storage_warning})

    @socketio.on('select_mode')
    @game_session_required
    def handle_select_mode(data, machine):
        if not machine.select_mode(data.get('mode')):
            emit('error', {'error': 'Mode can only be changed between rounds', 'action': 'select_mode'})

    @socketio.on('start_pattern')
    @game_session_required
    def handle_start_pattern(data, machine):
        machine.start_pattern()

    @socketio.on('color_click')
    @game_session_required
    def handle_color_click(data, machine):
        machine.color_click(data.get('color'))

    @socketio.on('select_level')
    @game_session_required
    def handle_select_level(data, machine):
        if not machine.select_level(data.get('level')):
            emit('error', {'error': 'Level is locked', 'action': 'select_level'})

    @socketio.on('submit_secret_code')
    @game_session_required
    def handle_submit_secret_code(data, machine):
        emit('secret_code_result', machine.submit_secret_code(data.get('code')))

    @socketio.on('restart')
    @game_session_required
    def handle_restart(data, machine):
        machine.restart()

    @socketio.on('next_level')
    @game_session_required
    def handle_next_level(data, machine):
        if not machine.next_level():
            emit('error', {'error': 'Next level is not unlocked', 'action': 'next_level'})

    @socketio.on('show_instructions')
    @game_session_required
    def handle_show_instructions(data, machine):
        machine.show_instructions()

    @socketio.on('hide_instructions')
    @game_session_required
    def handle_hide_instructions(data, machine):
        machine.hide_instructions()

    @socketio.on('set_player_name')
    @game_session_required
    def handle_set_player_name(data, machine):
        result = machine.set_player_name(data.get('name'))
        if not result['success']:
            emit('error', {'error': result['error'], 'action': 'set_player_name'})

    @socketio.on('submit_score')
    @game_session_required
    def handle_submit_score(data, machine):
        emit('score_submit_result', machine.submit_score())

    @socketio.on('get_leaderboard')
    @game_session_required
    def handle_get_leaderboard(data, machine):
        result = machine.refresh_leaderboard()
        if not result['success']:
            emit('error', {'error': result['error'], 'action': 'get_leaderboard'})
