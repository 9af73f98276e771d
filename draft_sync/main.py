"""
CLI entry point: serve the draft sync API.
"""

import argparse
import logging
import sys

import uvicorn

from . import config
from .api_server import create_app
from .service import DraftSyncService
from .sync.draft_room_client import DraftRoomClient


def setup_logging(verbose: bool = False):
    """
    Configure logging for the application.

    Args:
        verbose: Enable verbose (DEBUG) logging
    """
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL)
    logging.basicConfig(
        level=level,
        format=config.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def parse_arguments(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Live draft room sync and auction inflation API',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve on the default host/port
  python -m draft_sync.main

  # Custom draft room feed with an API key
  python -m draft_sync.main --draft-room-url https://rooms.example.com/api --api-key KEY

  # Debug logging on all interfaces
  python -m draft_sync.main --host 0.0.0.0 --port 9000 --verbose
        """
    )

    parser.add_argument('--host', type=str, default=config.API_HOST, help='Bind address')
    parser.add_argument('--port', type=int, default=config.API_PORT, help='Bind port')
    parser.add_argument(
        '--draft-room-url',
        type=str,
        default=config.DRAFT_ROOM_BASE_URL,
        help='Base URL of the draft room sync feed'
    )
    parser.add_argument('--api-key', type=str, default=None, help='Bearer token for the feed')
    parser.add_argument(
        '--request-timeout',
        type=float,
        default=config.DRAFT_ROOM_REQUEST_TIMEOUT,
        help='Feed request timeout in seconds'
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable DEBUG logging')

    return parser.parse_args(argv)


def main(argv=None):
    """Main execution."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    logger = logging.getLogger(__name__)
    logger.info(f"Draft room feed: {args.draft_room_url}")

    feed = DraftRoomClient(
        base_url=args.draft_room_url,
        api_key=args.api_key,
        timeout=args.request_timeout
    )
    service = DraftSyncService(feed)
    app = create_app(service)

    try:
        uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    except Exception as e:
        logger.error(f"Server failed: {e}", exc_info=True)
        sys.exit(1)
    finally:
        service.shutdown()


if __name__ == '__main__':
    main()
