"""Terminal output, interactive prompts and log setup.

Everything here writes to stderr: stdout carries only the export statements a
parent shell evaluates.
"""

import getpass
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "aws_bastion_login"

logger = logging.getLogger(PACKAGE_LOGGER)


def setup_logging(log_dir: Path, debug: bool = False) -> Optional[Path]:
    """Configure logging to file and optionally to console in debug mode.

    When the log file cannot be opened, a warning is printed and logging goes
    to the console only (with ``--debug``) or nowhere. Returns the log file,
    or ``None`` in that case.
    """
    log_file = log_dir / f"aws_bastion_login_{datetime.now().strftime('%Y%m%d')}.log"

    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
    except OSError as e:
        print(f"{Colors.YELLOW}⚠ Cannot write log file {log_file}: {e}{Colors.ENDC}", file=sys.stderr)
        log_file = None
        # Keeps records away from logging's last-resort stderr handler
        logger.addHandler(logging.NullHandler())
    else:
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        logger.addHandler(file_handler)

    # Console handler - only in debug mode
    if debug:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
        logger.addHandler(console_handler)

    logger.debug(f"Logging initialized. Log file: {log_file}")
    return log_file


class Colors:
    HEADER = '\033[95m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


def print_success(msg: str):
    print(f"{Colors.GREEN}✓ {msg}{Colors.ENDC}", file=sys.stderr)
    logger.info(f"SUCCESS: {msg}")


def print_error(msg: str):
    print(f"{Colors.RED}✗ {msg}{Colors.ENDC}", file=sys.stderr)
    logger.error(msg)


def print_warning(msg: str):
    print(f"{Colors.YELLOW}⚠ {msg}{Colors.ENDC}", file=sys.stderr)
    logger.warning(msg)


def print_info(msg: str):
    print(f"{Colors.BLUE}ℹ {msg}{Colors.ENDC}", file=sys.stderr)
    logger.info(msg)


def format_duration(seconds: int) -> str:
    hours, remainder = divmod(max(seconds, 0), 3600)
    minutes = remainder // 60
    return f"{hours}h {minutes}m"


class TerminalPrompter:
    """Prompts on the controlling terminal, with the question on stderr."""

    def ask(self, label: str, default: str) -> str:
        print(f"{Colors.YELLOW}{label} [{default}]: {Colors.ENDC}", end="", file=sys.stderr, flush=True)
        answer = input().strip()
        return answer or default

    def ask_secret(self, label: str) -> str:
        return getpass.getpass(f"{label}: ", stream=sys.stderr).strip()
