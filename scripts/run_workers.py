#!/usr/bin/env python3
"""
Start RQ workers for artistic QR jobs.

Usage:
    python scripts/run_workers.py                          # all artistic queues, one process
    python scripts/run_workers.py --workers 4              # four processes
    python scripts/run_workers.py --queues artistic-high   # only high priority
    python scripts/run_workers.py --burst                  # drain the queues and exit
    python scripts/run_workers.py --check                  # Redis health only

The RQ scheduler runs inside each worker; without it, jobs waiting on a retry
backoff are never put back on the queue.
"""

import argparse
import logging
import os
import signal
import sys
from multiprocessing import Process
from typing import List, Optional

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rq import Queue, Worker

from artqr.core.container import get_container
from artqr.core.redis import Queues, get_redis, redis_health_check

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger("artqr.worker")


def work(queue_names: List[str], worker_name: str, burst: bool = False, max_jobs: Optional[int] = None):
    """Run one RQ worker in the current process until stopped (or drained, in burst mode)."""
    # Fail on bad storage/Replicate settings before taking a job off the queue
    get_container()

    redis_conn = get_redis()
    worker = Worker(
        queues=[Queue(name, connection=redis_conn) for name in queue_names],
        connection=redis_conn,
        name=worker_name,
        job_monitoring_interval=5,
    )
    logger.info(f"[Worker] {worker_name} listening on {', '.join(queue_names)}")
    worker.work(with_scheduler=True, burst=burst, max_jobs=max_jobs)


def _child(queue_names: List[str], index: int, burst: bool, max_jobs: Optional[int]):
    name = f"artqr-worker-{index}-{os.getpid()}"

    def stop(signum, frame):
        logger.info(f"[Worker] {name} stopping (signal {signum})")
        sys.exit(0)

    signal.signal(signal.SIGTERM, stop)
    signal.signal(signal.SIGINT, stop)
    work(queue_names, name, burst, max_jobs)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run ArtQR RQ workers")
    parser.add_argument("--queues", "-q", nargs="+", choices=Queues.ALL, default=Queues.ALL,
                        help="Queues to drain, highest priority first (default: all)")
    parser.add_argument("--workers", "-w", type=int, default=1, help="Worker processes (default: 1)")
    parser.add_argument("--burst", "-b", action="store_true", help="Exit once the queues are empty")
    parser.add_argument("--max-jobs", type=int, default=None, help="Exit after this many jobs per process")
    parser.add_argument("--check", action="store_true", help="Check the Redis connection and exit")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    # Keep priority order even if the caller listed queues out of order
    queue_names = [name for name in Queues.ALL if name in args.queues]

    health = redis_health_check()
    if args.check:
        print(f"Redis: {health}")
        sys.exit(0 if health.get("connected") else 1)
    if not health.get("connected"):
        logger.error(f"[Worker] Redis unreachable at {health.get('url')}: {health.get('error')}")
        sys.exit(1)

    logger.info(f"[Worker] Redis {health.get('redis_version')} ok, starting {args.workers} process(es)")

    if args.workers <= 1:
        work(queue_names, f"artqr-worker-main-{os.getpid()}", args.burst, args.max_jobs)
        return

    processes: List[Process] = []

    def shutdown(signum, frame):
        logger.info("[Worker] Shutting down all processes")
        for p in processes:
            if p.is_alive():
                p.terminate()
        sys.exit(0)

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    for i in range(1, args.workers + 1):
        p = Process(target=_child, args=(queue_names, i, args.burst, args.max_jobs), name=f"worker-{i}")
        p.start()
        processes.append(p)
        logger.info(f"[Worker] Started process {i}/{args.workers} (pid {p.pid})")

    for p in processes:
        p.join()


if __name__ == "__main__":
    main()
