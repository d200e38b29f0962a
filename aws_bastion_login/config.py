"""Defaults and environment-driven settings."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "bastion"
DEFAULT_SESSION_TIMEOUT = 43200  # 12 hours, the STS maximum
DEFAULT_ROLE_SESSION_TIMEOUT = 3600
SAFETY_MARGIN = 200  # Seconds shaved off the session lifetime before re-authenticating
MIN_DURATION = 900  # STS minimum for both session tokens and assumed roles
MAX_DURATION = 43200

MFA_TOKEN_LENGTH = 6  # Standard MFA token length
MFA_MAX_ATTEMPTS = 3  # Maximum prompts for a well-formed MFA token

DEFAULT_ACCOUNT_ALIAS = "default"
DEFAULT_ROLE = "read"
DEFAULT_REGION = "us-east-1"

DEFAULT_ACCOUNTS_FILE = Path.home() / ".aws" / "bastion-accounts"
DEFAULT_LOG_DIR = Path.home() / ".cache" / "aws-bastion-login"

# Environment variables read as configuration
PROFILE_VAR = 'AWS_BASTION_DEFAULT_PROFILE'
SESSION_TIMEOUT_VAR = 'AWS_BASTION_SESSION_TIMEOUT'
ROLE_SESSION_TIMEOUT_VAR = 'AWS_BASTION_ROLE_SESSION_TIMEOUT'
ACCOUNTS_FILE_VAR = 'AWS_BASTION_ACCOUNTS_FILE'
LOG_DIR_VAR = 'AWS_BASTION_LOG_DIR'


@dataclass(frozen=True)
class Settings:
    default_profile: str = DEFAULT_PROFILE
    session_timeout: int = DEFAULT_SESSION_TIMEOUT
    role_session_timeout: int = DEFAULT_ROLE_SESSION_TIMEOUT
    accounts_file: Path = DEFAULT_ACCOUNTS_FILE
    log_dir: Path = DEFAULT_LOG_DIR


def load_dotenv_file(directory: Optional[Path] = None) -> bool:
    """Load a .env file from *directory* (default: cwd) without overriding the environment."""
    env_file = (directory or Path.cwd()) / ".env"
    if not env_file.exists():
        return False
    load_dotenv(env_file, override=False)
    logger.debug(f"Loaded environment from {env_file}")
    return True


def clamp_duration(seconds: int, name: str) -> int:
    """Keep a requested duration inside the window STS accepts."""
    clamped = max(MIN_DURATION, min(MAX_DURATION, seconds))
    if clamped != seconds:
        logger.warning(f"{name}={seconds}s is outside {MIN_DURATION}..{MAX_DURATION}s, using {clamped}s")
    return clamped


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default
    return clamp_duration(value, name)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build the effective settings from environment variables.

    Args:
        environ: Mapping to read from, defaults to ``os.environ``.

    Returns:
        A frozen ``Settings`` with every override applied.
    """
    if environ is None:
        environ = os.environ

    profile = environ.get(PROFILE_VAR, "").strip() or DEFAULT_PROFILE
    accounts_file = environ.get(ACCOUNTS_FILE_VAR, "").strip()
    log_dir = environ.get(LOG_DIR_VAR, "").strip()

    settings = Settings(
        default_profile=profile,
        session_timeout=_int_setting(environ, SESSION_TIMEOUT_VAR, DEFAULT_SESSION_TIMEOUT),
        role_session_timeout=_int_setting(environ, ROLE_SESSION_TIMEOUT_VAR, DEFAULT_ROLE_SESSION_TIMEOUT),
        accounts_file=Path(accounts_file).expanduser() if accounts_file else DEFAULT_ACCOUNTS_FILE,
        log_dir=Path(log_dir).expanduser() if log_dir else DEFAULT_LOG_DIR,
    )
    logger.debug(f"Settings: {settings}")
    return settings
