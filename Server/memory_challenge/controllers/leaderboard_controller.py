"""
Leaderboard Controller

Handles the leaderboard HTTP endpoints.
"""

from flask import Blueprint, current_app, request, jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from ..models.leaderboard import LeaderboardValidationError, ScoreboardUnavailableError
from ..services.leaderboard_service import get_leaderboard_service
from ..utils.game_logger import game_logger

leaderboard_bp = Blueprint('leaderboard', __name__)

# Bound to the app in create_app; limits are read from the app config per request
limiter = Limiter(get_remote_address)


@leaderboard_bp.app_errorhandler(429)
def rate_limit_exceeded(e):
    """Answer rate-limited requests with a JSON message."""
    error_response = {'message': e.description}
    game_logger.log_server_response(request, 'rate_limited', False, error_response)
    return jsonify(error_response), 429


@leaderboard_bp.route('/leaderboard', methods=['GET'])
@limiter.limit(lambda: current_app.config['LEADERBOARD_READ_LIMIT'],
               error_message='Too many requests, please try again later.')
def get_leaderboard():
    """Return the top entries, highest score first."""
    leaderboard_service = get_leaderboard_service()
    if not leaderboard_service:
        return jsonify({'message': 'Leaderboard service unavailable'}), 500

    game_logger.log_user_action(request, 'get_leaderboard')

    try:
        entries = [entry.to_dict() for entry in leaderboard_service.get_leaderboard()]
    except ScoreboardUnavailableError as e:
        game_logger.log_error(request, e, 'get_leaderboard')
        error_response = {'message': 'Failed to fetch leaderboard'}
        game_logger.log_server_response(request, 'get_leaderboard', False, error_response)
        return jsonify(error_response), 500

    game_logger.log_server_response(request, 'get_leaderboard', True, entries)
    return jsonify(entries)


@leaderboard_bp.route('/leaderboard', methods=['POST'])
@limiter.limit(lambda: current_app.config['LEADERBOARD_SUBMIT_LIMIT'],
               error_message='Too many score submissions, please wait before submitting again.')
def add_leaderboard_entry():
    """Validate and store a new leaderboard entry."""
    leaderboard_service = get_leaderboard_service()
    if not leaderboard_service:
        return jsonify({'message': 'Leaderboard service unavailable'}), 500

    data = request.get_json(silent=True)
    game_logger.log_user_action(request, 'add_leaderboard_entry',
                                player_name=data.get('playerName') if isinstance(data, dict) else None)

    try:
        entry = leaderboard_service.add_entry(data)
    except LeaderboardValidationError as e:
        error_response = {'message': 'Invalid data', 'errors': e.errors}
        game_logger.log_server_response(request, 'add_leaderboard_entry', False, error_response)
        return jsonify(error_response), 400
    except ScoreboardUnavailableError as e:
        game_logger.log_error(request, e, 'add_leaderboard_entry')
        error_response = {'message': 'Failed to add leaderboard entry'}
        game_logger.log_server_response(request, 'add_leaderboard_entry', False, error_response)
        return jsonify(error_response), 500

    response_data = entry.to_dict()
    game_logger.log_server_response(request, 'add_leaderboard_entry', True, response_data)
    return jsonify(response_data)
