import json
import logging
import argparse
import sys

from core.app_context import AppContext
from core.config_loader import load_config
from core.exceptions import MatchingError
from core.tasks import InlineTaskDispatcher
from database.database import build_engine
from database.init_db import init_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_context(config_path: str) -> AppContext:
    """Context whose background tasks run in-process before the command exits."""
    config = load_config(config_path)
    engine = build_engine(config.database.url, echo=config.database.echo)
    return AppContext.build(config, engine=engine, dispatcher=InlineTaskDispatcher())


def run_command(context: AppContext, args) -> dict:
    service = context.service

    if args.command == 'init-db':
        init_db(context.engine)
        return {'initialized': True}
    if args.command == 'retry':
        return service.retry_matching_for_request(args.request_id).to_dict()
    if args.command == 'retry-all':
        return service.retry_all_unmatched().to_dict()
    if args.command == 'expire':
        return {'expired': service.expire_overdue_matches()}
    if args.command == 'reconcile':
        result = service.reconcile_status(args.request_id)
        return {
            'request_id': str(result.request_id),
            'previous_status': result.previous_status,
            'status': result.status,
            'changed': result.changed,
        }
    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Synapse matching admin commands")
    parser.add_argument('--config', default='config.yaml', help='Path to config.yaml')
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('init-db', help='Create the database tables')
    retry_parser = subparsers.add_parser('retry', help='Look for a new match for one request')
    retry_parser.add_argument('request_id')
    subparsers.add_parser('retry-all', help='Retry every request without an active match')
    subparsers.add_parser('expire', help='Expire overdue notified matches')
    reconcile_parser = subparsers.add_parser('reconcile', help='Recompute a request status from its matches')
    reconcile_parser.add_argument('request_id')

    args = parser.parse_args(argv)
    context = build_context(args.config)

    try:
        output = run_command(context, args)
    except MatchingError as e:
        logger.error(f"{args.command} failed: {e}")
        print(json.dumps({'success': False, 'error': str(e), 'type': e.__class__.__name__}))
        return 1

    ran = context.dispatcher.run_pending()
    if ran:
        logger.info(f"Ran {ran} background tasks")

    print(json.dumps({'success': True, **output}, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
