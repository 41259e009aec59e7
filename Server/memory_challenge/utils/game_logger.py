"""
Game Logger Module for the Memory Challenge Server

This module provides structured logging for player actions (HTTP and
socket), server responses and game events.
"""

import logging
import json
import os
from datetime import datetime
from typing import Dict, Any, Optional
from pathlib import Path


class GameLogger:
    """
    Centralized logging system for the game server.

    Features:
    - Player action tracking with IP/socket identification
    - Server response logging
    - Game event logging (rounds started, levels completed, game over)
    - JSON structured logs for easy parsing
    """

    def __init__(self, log_dir: str = "logs", level: str = "INFO"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.level = getattr(logging, str(level).upper(), logging.INFO)

        # Setup main game logger
        self.logger = self._setup_logger()

    def _setup_logger(self) -> logging.Logger:
        """Setup the main game logger with file handler."""
        logger = logging.getLogger('memory_challenge')
        logger.setLevel(self.level)

        # Prevent duplicate handlers
        if logger.handlers:
            logger.handlers.clear()

        # Create log file with date
        log_file = self.log_dir / f"game_log_{datetime.now().strftime('%Y-%m-%d')}.log"

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(self.level)

        # Console handler for only important messages (WARNING and above)
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)

        file_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_formatter = logging.Formatter(
            '%(levelname)s: %(message)s'
        )

        file_handler.setFormatter(file_formatter)
        console_handler.setFormatter(console_formatter)

        logger.addHandler(file_handler)
        logger.addHandler(console_handler)

        return logger

    def _get_user_identity(self, request, session_id: Optional[str] = None) -> Dict[str, Optional[str]]:
        """Extract user identity information from request."""
        return {
            'user_ip': getattr(request, 'remote_addr', None) or 'unknown',
            'session_id': session_id or getattr(request, 'sid', None)
        }

    def _create_log_entry(self,
                          event_type: str,
                          action: str,
                          user_info: Dict[str, Optional[str]],
                          details: Dict[str, Any]) -> str:
        """Create a structured log entry."""
        log_entry = {
            'timestamp': datetime.now().isoformat(),
            'event_type': event_type,
            'action': action,
            'user': user_info,
            'details': details
        }
        return json.dumps(log_entry, ensure_ascii=False, default=str)

    def log_user_action(self, request, action: str, **kwargs):
        """
        Log an HTTP request made by a player.

        Args:
            request: Flask request object
            action: Type of action (e.g., 'get_leaderboard', 'submit_score')
            **kwargs: Additional details to log
        """
        user_info = self._get_user_identity(request)

        details = {
            'endpoint': request.endpoint,
            'method': request.method,
            'url': request.url,
            **kwargs
        }

        self.logger.info(self._create_log_entry('USER_ACTION', action, user_info, details))

    def log_socket_action(self, session_id: str, action: str, **kwargs):
        """
        Log a Socket.IO input event.

        Args:
            session_id: Socket id of the player's connection
            action: Event name (e.g., 'start_pattern', 'color_click')
            **kwargs: Event payload details
        """
        user_info = {'user_ip': None, 'session_id': session_id}
        self.logger.info(self._create_log_entry('SOCKET_ACTION', action, user_info, kwargs))

    def log_server_response(self,
                            request,
                            action: str,
                            success: bool,
                            response_data: Any,
                            **kwargs):
        """
        Log server responses with full context.

        Args:
            request: Flask request object
            action: Action that was performed
            success: Whether the action succeeded
            response_data: Data being returned to client
            **kwargs: Additional details to log
        """
        user_info = self._get_user_identity(request)

        details = {
            'success': success,
            'response_size': len(str(response_data)),
            'response_data': self._sanitize_response_data(response_data),
            **kwargs
        }

        event_type = 'SERVER_RESPONSE_SUCCESS' if success else 'SERVER_RESPONSE_ERROR'
        log_message = self._create_log_entry(event_type, action, user_info, details)

        if success:
            self.logger.info(log_message)
        else:
            self.logger.error(log_message)

    def log_game_event(self, session_id: Optional[str], event: str, **kwargs):
        """
        Log game-specific events (pattern started, level complete, game over).

        Args:
            session_id: Socket id of the session, if any
            event: Type of game event
            **kwargs: Additional game details
        """
        user_info = {'user_ip': None, 'session_id': session_id}
        self.logger.info(self._create_log_entry('GAME_EVENT', event, user_info, kwargs))

    def log_error(self, request, error: Exception, action: str):
        """
        Log errors with full context.

        Args:
            request: Flask request object (or None outside a request)
            error: Exception that occurred
            action: Action that was being performed
        """
        user_info = self._get_user_identity(request)

        details = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'action': action
        }

        self.logger.error(self._create_log_entry('ERROR', action, user_info, details))

    def _sanitize_response_data(self, data: Any) -> Any:
        """Limit the size of large payloads in logs."""
        if isinstance(data, list):
            return {'data_type': 'list', 'length': len(data)}
        if not isinstance(data, dict):
            return {'data_type': type(data).__name__}

        sanitized = data.copy()
        if 'errors' in sanitized and isinstance(sanitized['errors'], list):
            sanitized['errors'] = [e.get('field') for e in sanitized['errors'] if isinstance(e, dict)]
        return sanitized


# Global logger instance
game_logger = GameLogger(
    log_dir=os.getenv('LOG_DIR', 'logs'),
    level=os.getenv('LOG_LEVEL', 'INFO')
)
