"""Entry point for the Kutter chat server."""

import argparse
import logging
import sys

from kutter.api.app import create_api, run_server
from kutter.config import Config


def main():
    """Parse arguments, validate config and serve."""
    parser = argparse.ArgumentParser(
        description="Kutter — real-time group chat server",
    )
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("--port", type=int, help="Bind port")
    parser.add_argument("--database-url", help="SQLAlchemy async database URL")
    parser.add_argument(
        "--maintenance",
        action="store_true",
        default=None,
        help="Start with maintenance mode enabled",
    )
    args = parser.parse_args()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO,
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logger = logging.getLogger(__name__)

    config = Config.from_args(
        host=args.host,
        port=args.port,
        database_url=args.database_url,
        maintenance=args.maintenance,
    )

    errors = config.validate()
    if errors:
        for err in errors:
            logger.error(err)
        sys.exit(1)

    logger.info("Listening on %s:%d", config.host, config.port)
    app = create_api(config)
    run_server(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
