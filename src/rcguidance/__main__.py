"""
RC Guidance CLI entry point.

Usage:
    python -m rcguidance                              # Kivy app
    python -m rcguidance --headless 192.168.1.20      # Stream from a local camera
    python -m rcguidance --calibrate 192.168.1.20     # Send one calibration frame
    python -m rcguidance --results 192.168.1.20       # Print ranked times
    python -m rcguidance --dev-server                 # Local stand-in server
    python -m rcguidance --help                       # Show help
"""

import argparse
import logging
import os
import sys
import time
from pathlib import Path

from .core.camera import Camera
from .core.client import GuidanceClient, GuidanceClientError, InvalidSessionInput, SessionParameters
from .core.config import Config
from .core.results import RankedResult, ResultsFormatError, rank_entries
from .core.session import GuidanceSession, SessionError, send_calibration_frame
from .core.upload_loop import IntervalScheduler


def setup_logging(config: Config) -> None:
    """Configure logging based on config."""
    log_config = config["logging"]
    level = getattr(logging, log_config.get("level", "INFO"))

    log_file = log_config.get("file", "logs/rcguidance.log")
    log_dir = Path(log_file).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format=log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file),
        ],
    )


def print_results(results: list[RankedResult]) -> None:
    """Print a ranking, one vehicle per line."""
    if not results:
        print("No results reported.")
        return
    for result in results:
        print(result)


def run_headless(config: Config, args: argparse.Namespace) -> int:
    """
    Initialize a session, stream frames for a fixed duration, then print results.

    Returns:
        Process exit code.
    """
    logger = logging.getLogger(__name__)

    try:
        params = SessionParameters.from_form(
            args.headless, args.cars, args.markers, args.marker_size
        )
    except InvalidSessionInput as e:
        logger.error(str(e))
        return 2

    camera = Camera(config["camera"])
    if not camera.open():
        logger.error("Failed to open camera. Check connection and try again.")
        return 1

    session = GuidanceSession(params, config.as_dict, camera, IntervalScheduler())
    try:
        session.initialize()
        if not session.start_capture():
            logger.error("Capture loop did not start")
            return 1

        logger.info(f"Streaming for {args.duration:.0f}s (Ctrl+C to end early)")
        try:
            time.sleep(args.duration)
        except KeyboardInterrupt:
            logger.info("Interrupted by user")

        results = session.end()
        logger.info(f"Upload stats: {session.loop.stats.to_dict()}")
        print_results(results)
        return 0

    except SessionError as e:
        logger.error(str(e))
        return 1
    finally:
        session.close()
        camera.release()


def run_calibrate(config: Config, server: str) -> int:
    """Capture one frame and send it to the server's calibration flow."""
    logger = logging.getLogger(__name__)

    with Camera(config["camera"]) as camera:
        if not camera.is_open:
            logger.error("Failed to open camera. Check connection and try again.")
            return 1
        with GuidanceClient(
            server,
            port=config.get("server.port", 5000),
            timeout=config.get("server.timeout", 5.0),
        ) as client:
            message = send_calibration_frame(
                client,
                camera,
                filename=config.get("capture.calibration_filename", "calib.jpg"),
            )

    print(message)
    return 0 if message == "Image sent" else 1


def run_results(config: Config, server: str) -> int:
    """Fetch and print the ranked times of the server's current session."""
    logger = logging.getLogger(__name__)

    with GuidanceClient(
        server,
        port=config.get("server.port", 5000),
        timeout=config.get("server.timeout", 5.0),
    ) as client:
        try:
            entries = client.get_times()
        except (GuidanceClientError, ResultsFormatError) as e:
            logger.error(f"Fetch error: {e}")
            return 1

    print_results(rank_entries(entries))
    return 0


def run_dev_server(config: Config) -> None:
    """Start the Flask development server."""
    logger = logging.getLogger(__name__)
    logger.info("Starting development server...")

    from .web.app import create_app

    app = create_app(config)

    dev_config = config["dev_server"]
    host = dev_config.get("host", "0.0.0.0")
    port = dev_config.get("port", 5000)
    debug = config.get("app.debug", False)

    logger.info(f"Development server starting at http://{host}:{port}")

    app.run(host=host, port=port, debug=debug, threaded=True)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="RC Guidance - client for the RC vehicle guidance server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m rcguidance                                   Run the app
    python -m rcguidance --headless 10.0.0.5 --cars 3 \\
        --markers 4 --marker-size 10 --duration 60         Stream for a minute
    python -m rcguidance --results 10.0.0.5                Print ranked times
    python -m rcguidance --dev-server                      Local stand-in server
        """,
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--headless", metavar="SERVER", help="Stream from a local camera without UI")
    mode.add_argument("--calibrate", metavar="SERVER", help="Send one calibration frame")
    mode.add_argument("--results", metavar="SERVER", help="Fetch and print ranked times")
    mode.add_argument("--dev-server", action="store_true", help="Start the development server")

    parser.add_argument("--cars", default="", help="Number of vehicles (headless)")
    parser.add_argument("--markers", default="", help="Number of route markers (headless)")
    parser.add_argument("--marker-size", default="", help="Marker size in cm (headless)")
    parser.add_argument(
        "--duration", type=float, default=60.0, help="Seconds to stream (headless)"
    )
    parser.add_argument("--camera", type=int, help="Camera index to use (overrides config)")
    parser.add_argument("--config", type=str, help="Path to configuration directory")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    args = parser.parse_args()

    config_dir = Path(args.config) if args.config else None
    config = Config(config_dir)

    if args.camera is not None:
        os.environ["RCGUIDANCE_CAMERA__SOURCE"] = str(args.camera)
        config.reload()

    if args.debug:
        os.environ["RCGUIDANCE_ENV"] = "development"
        config = Config(config_dir)

    setup_logging(config)

    logger = logging.getLogger(__name__)
    logger.info("RC Guidance starting...")
    logger.info(f"Environment: {config.env}")

    if args.headless:
        sys.exit(run_headless(config, args))
    elif args.calibrate:
        sys.exit(run_calibrate(config, args.calibrate))
    elif args.results:
        sys.exit(run_results(config, args.results))
    elif args.dev_server:
        run_dev_server(config)
    else:
        from .mobile.app import run_mobile_app

        run_mobile_app(config)


if __name__ == "__main__":
    main()
