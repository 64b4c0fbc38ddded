#!/usr/bin/env python3
"""
Update Notifier entry point.

Usage:
    python main.py
    python main.py --config config.yaml --port 9000
    python main.py --dry-run --verbose
"""

import argparse
import logging
import os

import uvicorn

from core.config_loader import load_config
from web.backend.app import create_app

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description='Plugin update notifier')
    parser.add_argument('--config', default='config.yaml', help='Path to config.yaml')
    parser.add_argument('--host', default=None, help='Override web.host')
    parser.add_argument('--port', type=int, default=None, help='Override web.port')
    parser.add_argument('--dry-run', action='store_true', help='Log notifications instead of sending them')
    parser.add_argument('--verbose', action='store_true')

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.dry_run:
        os.environ['NOTIFICATION_DRY_RUN'] = 'true'

    config = load_config(args.config)
    host = args.host or config.web.host
    port = args.port or config.web.port

    logger.info(f"Starting Update Notifier on {host}:{port}")
    logger.info(f"API Docs: http://{host}:{port}/docs")

    uvicorn.run(
        create_app(config_path=args.config),
        host=host,
        port=port,
        log_level="debug" if args.verbose else "info"
    )


if __name__ == '__main__':
    main()
