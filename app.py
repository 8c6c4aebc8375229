#!/usr/bin/env python3
"""
Run script for the HR operations core
"""

import argparse
import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file before the app reads them
load_dotenv()

from hr_ops import create_app
from hr_ops.build import build_database
from hr_ops.logger import get_logger

# Run 'python generate_env.py' to create .env with a SECRET_KEY and admin password.

logger = get_logger("hr_ops.run")


def parse_arguments():
    parser = argparse.ArgumentParser(description='HR Operations Core')
    parser.add_argument('--build-only', action='store_true',
                        help='Create tables and the admin user, then exit without serving')
    parser.add_argument('--skip-data', action='store_true',
                        help='Create tables only, without inserting the admin user')
    return parser.parse_args()


def _env_flag(name):
    return os.environ.get(name, 'False').lower() in ('true', '1', 'yes', 'on')


if __name__ == '__main__':
    args = parse_arguments()
    app = create_app()

    with app.app_context():
        build_database(insert_data=not args.skip_data)

    if args.build_only:
        logger.info("Build completed. Exiting without starting web server.")
        sys.exit(0)

    debug_mode = _env_flag('FLASK_DEBUG')
    use_reloader = _env_flag('USE_RELOADER')
    host = os.environ.get('FLASK_HOST', '127.0.0.1')
    port = int(os.environ.get('FLASK_PORT', '5000'))

    if debug_mode:
        logger.warning("DEBUG MODE ENABLED - Do not use in production!")

    logger.info(f"Starting server on {host}:{port} (debug={debug_mode}, reloader={use_reloader})")
    app.run(debug=debug_mode, host=host, port=port, use_reloader=use_reloader)
