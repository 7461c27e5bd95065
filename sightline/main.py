# Main application entry point
import argparse
import sys
import time

from . import cli
from .config import load_settings
from .errors import ConfigError
from .logger import setup_logging, get_logger
from .orchestrators.fusion_orchestrator import FusionOrchestrator
from .perception.depth_probe import DepthMapProbe
from .perception.frame_receiver import FrameReceiver
from .perception.perception_client import PerceptionClient
from .telemetry import CSVTelemetryLogger


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Obstacle tracking and nearest-obstacle alerts.")
    parser.add_argument("--stream-uri", type=str, default="tcp://localhost:5559",
                        help="ZeroMQ endpoint publishing camera frames with depth.")
    parser.add_argument("--perception-uri", type=str, default="tcp://localhost:5557",
                        help="ZeroMQ endpoint of the object detection service.")
    parser.add_argument("--config", type=str, default=None,
                        help="JSON tuning file overriding the default settings.")
    parser.add_argument("--telemetry", type=str, default=None,
                        help="Write one CSV row per radar scan to this file.")
    parser.add_argument("--report-interval", type=float, default=0.5,
                        help="Seconds between console alert lines.")
    parser.add_argument("--session-id", type=str, default=None,
                        help="Identifier used in the log file name.")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable verbose debug output.")
    return parser.parse_args(argv)


def main(argv=None):
    """Main function to run the obstacle tracker."""
    args = parse_args(argv)
    setup_logging(session_id=args.session_id, verbose=args.verbose)
    logger = get_logger("Main")

    cli.print_title()

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        print(f"Invalid configuration: {e}")
        sys.exit(1)

    probe = DepthMapProbe()
    client = PerceptionClient(args.perception_uri)
    telemetry = CSVTelemetryLogger(args.telemetry) if args.telemetry else None
    orchestrator = FusionOrchestrator(client, probe, settings=settings, telemetry=telemetry)

    def on_frame(frame):
        if frame.depth is not None:
            probe.update(frame.depth)
        orchestrator.on_frame(frame)

    receiver = FrameReceiver(args.stream_uri)
    orchestrator.start()
    receiver.start_receiving(on_frame)
    logger.info("PipelineReady", {"stream": args.stream_uri, "perception": args.perception_uri})
    print(" --- Sightline Ready ---")

    try:
        while True:
            time.sleep(args.report_interval)
            cli.print_report(orchestrator, verbose=args.verbose)
    except KeyboardInterrupt:
        print("\nCaught KeyboardInterrupt. Shutting down...")
    finally:
        receiver.stop()
        orchestrator.stop()
        client.close()

    print(" --- Exiting Sightline ---")


if __name__ == "__main__":
    main()
