"""
Command line entry point
"""

import signal
import sys
from pathlib import Path

from .config import load_config
from .control import ControlLoop
from .errors import ConfigurationError
from .hardware import DryRunHardwareSink, IpmiHardwareSink
from .log import Logger
from .metrics import JsonLinesMetricsSink, RollingMetricsLog
from .sensors import IpmiSensorSource
from .web import WebInterface


def default_config_path():
    """config.yaml next to the launcher script, else in the working directory"""
    script_dir = Path(sys.argv[0]).resolve().parent
    candidate = script_dir / "config.yaml"
    if candidate.exists():
        return candidate
    return Path("config.yaml")


def build_loop(config, logger):
    """Wire the control loop to its sensor, hardware and metrics collaborators"""
    if config.test_mode:
        hardware = DryRunHardwareSink(logger)
    else:
        hardware = IpmiHardwareSink.from_config(config)

    sinks = [RollingMetricsLog(config.metrics_history)]
    if config.metrics_jsonl_path:
        sinks.append(JsonLinesMetricsSink(config.metrics_jsonl_path))

    return ControlLoop(config, IpmiSensorSource.from_config(config), hardware,
                       metrics_sinks=sinks, logger=logger)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    config_path = Path(argv[0]) if argv else default_config_path()

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        Logger().error(f"Configuration error: {e}")
        return 1

    logger = Logger.from_config(config)
    logger.info(f"Configuration loaded from {config_path}")
    if config.test_mode:
        logger.info("Test mode: fan commands will not be sent")

    loop = build_loop(config, logger)

    web_interface = None
    if config.web_interface.get('enabled', False):
        web_interface = WebInterface(loop, config.web_interface, logger)
        web_interface.start()

    def handle_term(signum, frame):
        logger.info("Received SIGTERM, stopping after the current tick")
        loop.stop()

    signal.signal(signal.SIGTERM, handle_term)

    try:
        loop.run()
    except KeyboardInterrupt:
        loop.stop()
    finally:
        logger.quiet = False
        logger.info("Fan controller stopped")
        if web_interface:
            web_interface.stop()
        logger.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
