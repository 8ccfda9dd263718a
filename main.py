from __future__ import annotations

import argparse
import os
import signal
import sys
from typing import List, Optional

from dotenv import load_dotenv

from tcpping.config import AppConfig, load_descriptors
from tcpping.controller import ProbeController
from tcpping.factory import ProberFactory
from tcpping.log import get_logger, setup_logging
from tcpping.scheduler import Scheduler


def run(descriptors: List[str], config: AppConfig) -> int:
    log = get_logger()
    factory = ProberFactory(project_id=config.project_id)
    probers = factory.create_all(descriptors)
    if not probers:
        print("no prober tasks were configured")
        return 0

    controller = ProbeController([Scheduler(p) for p in probers])

    def _on_signal(signum, frame) -> None:
        log.info("received %s, stopping", signal.Signals(signum).name)
        controller.stop()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    controller.start()
    cancel = controller.cancel_event
    # short waits keep the main thread responsive to signals
    while not cancel.wait(0.5):
        pass

    results = controller.wait()
    controller.close()
    log.info("all %d task(s) stopped after %d attempt(s)", len(results), sum(results.values()))
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()
    config = AppConfig.from_env()

    parser = argparse.ArgumentParser(description="Periodic TCP connect prober")
    parser.add_argument("--prefix", default=config.env_prefix, help="Environment variable prefix for target descriptors")
    parser.add_argument("--log-level", default=config.log_level, help="Diagnostics log level (DEBUG, INFO, ...)")
    args = parser.parse_args(argv)

    config.env_prefix = args.prefix
    config.log_level = args.log_level
    setup_logging(config.log_level)

    descriptors = load_descriptors(os.environ, config.env_prefix)
    sys.exit(run(descriptors, config))


if __name__ == "__main__":
    main()
