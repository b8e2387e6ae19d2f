"""Command-line entry point: python -m cli [--server URL] [--user ID] [--topic T] [--size N]."""

import argparse
import logging
import sys

from cli.api_client import FlashroundAPIClient
from cli.console import ConsoleUI


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='flashround',
        description='Adaptive multiple-choice flashcard rounds'
    )
    parser.add_argument('--server', default='http://localhost:8000',
                        help='Flashround server URL (default: %(default)s)')
    parser.add_argument('--user', default='default',
                        help='User whose statistics are played against (default: %(default)s)')
    parser.add_argument('--topic', help="Topic to select before the first round ('All' for every topic)")
    parser.add_argument('--size', type=int, help='Questions per round, clamped by the server')
    parser.add_argument('--verbose', action='store_true', help='Log HTTP traffic')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    ui = ConsoleUI(FlashroundAPIClient(base_url=args.server, user_id=args.user))
    try:
        ui.run(topic=args.topic, round_size=args.size)
    except KeyboardInterrupt:
        print('\nGoodbye!')
        sys.exit(0)


if __name__ == '__main__':
    main()
