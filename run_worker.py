"""
Standalone notification worker.

Polls the notification outbox every NOTIFY_POLL_INTERVAL_SECONDS and delivers
due entries until interrupted. Run exactly one instance.

Usage:
    python run_worker.py            # run forever
    python run_worker.py --once     # deliver one batch and exit
"""
import argparse
import signal
import threading

from facilityops import create_app
from facilityops.logging_config import get_logger
from facilityops.notifications.worker import NotificationWorker

logger = get_logger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Deliver pending work order notifications")
    parser.add_argument("--once", action="store_true", help="Run a single tick and exit")
    args = parser.parse_args()

    # The worker must not start a second consumer through the in-process scheduler
    app = create_app({"RUN_NOTIFICATION_WORKER": False})
    worker = NotificationWorker(app)

    if args.once:
        stats = worker.tick_in_context()
        logger.info("Single tick finished", **stats)
        return

    stop_event = threading.Event()

    def _stop(signum, frame):
        logger.info("Stop signal received", signal=signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    worker.run(stop_event=stop_event)


if __name__ == "__main__":
    main()
