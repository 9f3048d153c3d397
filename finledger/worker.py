"""Scheduler process entry point: python -m finledger.worker"""

import signal
import threading

from finledger.config import settings
from finledger.infrastructure.database.session import init_db
from finledger.infrastructure.observability.logging import setup_logging
from finledger.services.scheduler import Scheduler


def main() -> None:
    setup_logging(settings.log_level)
    init_db()

    stop_event = threading.Event()
    signal.signal(signal.SIGTERM, lambda signum, frame: stop_event.set())
    signal.signal(signal.SIGINT, lambda signum, frame: stop_event.set())

    Scheduler().run_forever(stop_event)


if __name__ == "__main__":
    main()
