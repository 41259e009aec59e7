"""
Memory Color Challenge Server - Main Entry Point

This is the main entry point for the game server.
It initializes all services and starts the Flask-SocketIO application.
"""

from memory_challenge import create_app
from memory_challenge.config import Config, validate_level_code_table
from memory_challenge.services.game_service import initialize_game_service
from memory_challenge.services.leaderboard_service import initialize_leaderboard_service
from memory_challenge.services.scoreboard_client import ScoreboardClient
from memory_challenge.utils.game_logger import game_logger


def main():
    """Main function to initialize services and start the server."""
    try:
        print("Initializing services...")
        validate_level_code_table()

        # Leaderboard served by this process (MongoDB when configured)
        leaderboard_service = initialize_leaderboard_service(Config.MONGO_URI, Config.MONGO_DB_NAME)
        storage_kind = "MongoDB" if Config.MONGO_URI else "in-memory"
        print(f"✓ Leaderboard service initialized ({storage_kind} storage)")

        # Game sessions submit to a remote scoreboard when one is configured
        if Config.SCOREBOARD_URL:
            scoreboard = ScoreboardClient(Config.SCOREBOARD_URL, Config.SCOREBOARD_TIMEOUT_SECONDS)
            print(f"✓ Using remote scoreboard at {Config.SCOREBOARD_URL}")
        else:
            scoreboard = leaderboard_service

        initialize_game_service(progress_dir=Config.PROGRESS_DIR, scoreboard=scoreboard)
        print("✓ Game service initialized successfully")

        print("Creating Flask application...")
        app, socketio = create_app(Config)
        print("✓ Flask application created successfully")

        game_logger.logger.info("Memory Challenge Server starting")

        print(f"\nStarting Memory Challenge Server on {Config.HOST}:{Config.PORT}")
        print(f"Debug mode: {Config.DEBUG}")
        print("=" * 50)

        socketio.run(app, host=Config.HOST, port=Config.PORT, debug=Config.DEBUG,
                     allow_unsafe_werkzeug=True)

    except KeyboardInterrupt:
        print("\nServer shutting down...")
        game_logger.logger.info("Memory Challenge Server shutting down (KeyboardInterrupt)")
    except Exception as e:
        print(f"Error starting server: {e}")
        game_logger.logger.error(f"Error starting server: {e}")
        raise


if __name__ == '__main__':
    main()
