"""
Main entry point for TrackSem.
"""

import argparse
import logging
import sys
from typing import Any, Dict, Optional

from .api.rest_api import TrackSemRestAPI
from .config import load_config
from .core.entities import User
from .core.exceptions import TrackSemException
from .persistence import DatabaseFactory, apply_schema
from .services import GradebookService, IdentityProviderFactory


class TrackSemPlatform:
    """Wires storage, identity, services and the REST API together."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self._config = config or load_config()
        self._database = None
        self._identity = None
        self._gradebook = None
        self._rest_api = None

        # Initialize platform
        self._initialize_platform()

    def _initialize_platform(self):
        """Initialize the platform with all services."""
        print("Initializing TrackSem...")

        # Initialize database
        db_type = self._config.get('database_type', 'sqlite')
        db_config = self._config.get('database_config', {})
        self._database = DatabaseFactory.create_database(db_type, **db_config)
        print(f"✓ Database initialized: {db_type}")

        version = apply_schema(self._database)
        print(f"✓ Schema at version {version}")

        # Initialize identity provider
        provider = self._config.get('identity_provider', 'supabase')
        self._identity = IdentityProviderFactory.create(provider, **self._config.get('identity_config', {}))
        print(f"✓ Identity provider initialized: {provider}")

        self._gradebook = GradebookService(self._database)
        self._rest_api = TrackSemRestAPI(self._gradebook, self._identity, self._config)
        print("✓ API initialized")

    @property
    def app(self):
        """The ASGI application."""
        return self._rest_api.app

    @property
    def gradebook(self) -> GradebookService:
        return self._gradebook

    def start_rest_server(self, host: Optional[str] = None, port: Optional[int] = None):
        """Serve the REST API until interrupted."""
        import uvicorn

        host = host or self._config.get('host', '0.0.0.0')
        port = port or self._config.get('port', 8000)
        print(f"✓ REST server starting on {host}:{port}")
        print(f"  - API Docs: http://localhost:{port}/docs")
        uvicorn.run(
            self.app,
            host=host,
            port=port,
            log_level=str(self._config.get('log_level', 'info')).lower()
        )

    def seed_user(self, user_id: str, branch: str, semester: int) -> int:
        """Seed catalog courses for a user without going through the API."""
        courses = self._gradebook.seed_courses(User(id=user_id), branch, semester)
        print(f"✓ {user_id} now has {len(courses)} course(s)")
        return len(courses)


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description="TrackSem grade tracking service")
    parser.add_argument("--config", type=str, help="Configuration file path")
    parser.add_argument("--host", type=str, help="Bind address")
    parser.add_argument("--port", type=int, help="REST server port")
    parser.add_argument("--seed", nargs=2, metavar=("BRANCH", "SEMESTER"),
                        help="Seed catalog courses for --user and exit")
    parser.add_argument("--user", type=str, help="User ID for --seed")

    args = parser.parse_args(argv)
    if args.seed and not args.user:
        parser.error("--seed requires --user")

    try:
        config = load_config(args.config)
        logging.basicConfig(
            level=str(config.get('log_level', 'info')).upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )
        platform = TrackSemPlatform(config)

        if args.seed:
            branch, semester = args.seed
            if not semester.isdigit():
                parser.error(f"invalid semester: {semester}")
            platform.seed_user(args.user, branch, int(semester))
        else:
            platform.start_rest_server(args.host, args.port)
    except TrackSemException as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutting down...")

    return 0


if __name__ == "__main__":
    sys.exit(main())
