#!/usr/bin/env python3
"""
RQ Worker for Synapse background jobs.

Processes match emails ('notifications' queue) and deferred rematches
('rematch' queue). The scheduler is enabled so delayed rematches
(enqueue_in) are moved onto the queue when due.

Usage:
    python -m notification.worker
    python -m notification.worker --burst
    python -m notification.worker --queues notifications --verbose
"""

import os
import sys
import argparse
import logging

from redis import Redis
from rq import Worker

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_QUEUES = ['notifications', 'rematch']


def start_worker(burst: bool = False, queues: list = None):
    """Start the RQ worker."""
    redis_url = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')

    if queues is None:
        queues = DEFAULT_QUEUES

    logger.info("Starting RQ Worker")
    logger.info(f"Queues: {', '.join(queues)}")
    logger.info(f"Burst mode: {burst}")

    try:
        redis_conn = Redis.from_url(redis_url)
        redis_conn.ping()
        logger.info("Connected to Redis")

        worker = Worker(queues, connection=redis_conn)

        if burst:
            logger.info("Running in burst mode...")
            worker.work(burst=True, with_scheduler=True)
        else:
            logger.info("Worker started. Press Ctrl+C to stop.")
            worker.work(with_scheduler=True)

    except KeyboardInterrupt:
        logger.info("Worker stopped")
    except Exception as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description='Synapse background worker')
    parser.add_argument('--burst', action='store_true', help='Process all and exit')
    parser.add_argument('--queues', nargs='+', default=DEFAULT_QUEUES)
    parser.add_argument('--verbose', action='store_true')

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    start_worker(burst=args.burst, queues=args.queues)


if __name__ == '__main__':
    main()
