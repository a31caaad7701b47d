"""Entry point: jenkins-tui / python -m jenkins_tui"""

import argparse
import logging
import sys
from pathlib import Path

from jenkins_sdk import ConfigurationError

from .config import CONFIG_ENV_VAR, get_config_path, get_logs_dir, load_config

LOG_FILENAME = "jenkins-tui.log"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jenkins-tui",
        description="Terminal console for a Jenkins server",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help=f"Config file (default: ${CONFIG_ENV_VAR} or {get_config_path()})",
    )
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level")
    parser.add_argument(
        "--refresh",
        type=int,
        metavar="SECONDS",
        help="Auto-refresh interval, overriding the config file",
    )
    return parser


def setup_logging(debug: bool = False) -> Path:
    log_path = get_logs_dir() / LOG_FILENAME
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(log_path),
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return log_path


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)
    logger = logging.getLogger("jenkins_tui")

    try:
        profile = load_config(args.config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    if args.refresh is not None:
        profile.auto_refresh_seconds = args.refresh

    # Textual is only needed once we actually start the UI
    from .ui.app import JenkinsTUI

    try:
        app = JenkinsTUI(profile, config_path=args.config)
        app.run()
    except Exception:
        logger.exception("jenkins-tui crashed")
        raise


if __name__ == "__main__":
    main()
