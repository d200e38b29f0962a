"""Translate credentials to and from shell environment variables.

The MFA session survives between runs only through these variables: the
parent shell evaluates the ``export`` lines, and the next run reads them back
with ``read_session``.
"""

import logging
import shlex
from typing import Dict, Iterable, List, Mapping, MutableMapping, Optional

from aws_bastion_login.config import DEFAULT_SESSION_TIMEOUT
from aws_bastion_login.roles import RoleCredential
from aws_bastion_login.session import Session

logger = logging.getLogger(__name__)

REGION_KEYS = ('AWS_REGION', 'AWS_DEFAULT_REGION')

ACCESS_KEY_ID = 'AWS_ACCESS_KEY_ID'
SECRET_ACCESS_KEY = 'AWS_SECRET_ACCESS_KEY'
SESSION_TOKEN = 'AWS_SESSION_TOKEN'
SECURITY_TOKEN = 'AWS_SECURITY_TOKEN'  # Legacy name still read by older SDKs
ACCOUNT_ID = 'AWS_ACCOUNT_ID'
ACCOUNT_ALIAS = 'AWS_ACCOUNT_ALIAS'
ROLE_NAME = 'AWS_ROLE_NAME'

BASTION_ACCESS_KEY_ID = 'AWS_BASTION_ACCESS_KEY_ID'
BASTION_SECRET_ACCESS_KEY = 'AWS_BASTION_SECRET_ACCESS_KEY'
BASTION_SESSION_TOKEN = 'AWS_BASTION_SESSION_TOKEN'
BASTION_SECURITY_TOKEN = 'AWS_BASTION_SECURITY_TOKEN'
BASTION_SESSION_START = 'AWS_BASTION_SESSION_START'
BASTION_SESSION_DURATION = 'AWS_BASTION_SESSION_DURATION'

ENV_TAG = 'AWS_ENV'
DEFAULT_PROFILE = 'AWS_BASTION_DEFAULT_PROFILE'

ROLE_KEYS = (ACCESS_KEY_ID, SECRET_ACCESS_KEY, SESSION_TOKEN, SECURITY_TOKEN)
SESSION_KEYS = (BASTION_ACCESS_KEY_ID, BASTION_SECRET_ACCESS_KEY, BASTION_SESSION_TOKEN,
                BASTION_SECURITY_TOKEN, BASTION_SESSION_START, BASTION_SESSION_DURATION)

MATERIALIZED_KEYS = (
    REGION_KEYS
    + ROLE_KEYS
    + (ACCOUNT_ID, ACCOUNT_ALIAS, ROLE_NAME)
    + SESSION_KEYS
    + (ENV_TAG, DEFAULT_PROFILE)
)


def read_session(environ: Mapping[str, str]) -> Optional[Session]:
    """Rebuild the cached session from the environment.

    Anything incomplete (a missing credential, or a start time that is not a
    positive integer) is read as no session at all. A missing or unreadable
    duration falls back to the default session timeout.
    """
    raw_start = environ.get(BASTION_SESSION_START, "").strip()
    access_key_id = environ.get(BASTION_ACCESS_KEY_ID, "").strip()
    secret_access_key = environ.get(BASTION_SECRET_ACCESS_KEY, "").strip()
    session_token = environ.get(BASTION_SESSION_TOKEN, "").strip()

    try:
        started_at = int(raw_start)
    except ValueError:
        started_at = 0

    if started_at <= 0 or not (access_key_id and secret_access_key and session_token):
        if raw_start or access_key_id:
            logger.debug("Ignoring incomplete MFA session in environment")
        return None

    raw_duration = environ.get(BASTION_SESSION_DURATION, "").strip()
    try:
        duration = int(raw_duration)
    except ValueError:
        duration = 0
    if duration <= 0:
        if raw_duration:
            logger.debug(f"Ignoring {BASTION_SESSION_DURATION}={raw_duration!r}")
        duration = DEFAULT_SESSION_TIMEOUT

    return Session(
        started_at=started_at,
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=session_token,
        duration=duration,
    )


def materialize(region: str,
                role_credential: Optional[RoleCredential],
                session: Optional[Session],
                account_alias: str,
                default_profile: str) -> Dict[str, str]:
    """Flatten the outcome of a run into environment variables.

    Missing credentials (after a failed role assumption, or an invalidated
    session) become empty strings so that evaluating the output resets stale
    values in the parent shell.
    """
    env = {key: region for key in REGION_KEYS}

    if role_credential is not None:
        env[ACCESS_KEY_ID] = role_credential.access_key_id
        env[SECRET_ACCESS_KEY] = role_credential.secret_access_key
        env[SESSION_TOKEN] = role_credential.session_token
        env[SECURITY_TOKEN] = role_credential.session_token
        env[ACCOUNT_ID] = role_credential.account_id
        env[ACCOUNT_ALIAS] = role_credential.account_alias
        env[ROLE_NAME] = role_credential.role_name
    else:
        for key in ROLE_KEYS + (ACCOUNT_ID, ACCOUNT_ALIAS, ROLE_NAME):
            env[key] = ""

    if session is not None:
        env[BASTION_ACCESS_KEY_ID] = session.access_key_id
        env[BASTION_SECRET_ACCESS_KEY] = session.secret_access_key
        env[BASTION_SESSION_TOKEN] = session.session_token
        env[BASTION_SECURITY_TOKEN] = session.session_token
        env[BASTION_SESSION_START] = str(session.started_at)
        env[BASTION_SESSION_DURATION] = str(session.duration)
    else:
        for key in SESSION_KEYS:
            env[key] = ""

    env[ENV_TAG] = account_alias
    env[DEFAULT_PROFILE] = default_profile
    return {key: env[key] for key in MATERIALIZED_KEYS}


def render_exports(env: Mapping[str, str]) -> str:
    """One ``export KEY='value'`` statement per line, ready for ``eval``."""
    return "\n".join(f"export {key}={shlex.quote(value)}" for key, value in env.items())


def render_unsets(keys: Iterable[str] = MATERIALIZED_KEYS) -> str:
    return "\n".join(f"unset {key}" for key in keys)


def apply_environment(env: Mapping[str, str], environ: MutableMapping[str, str]) -> List[str]:
    """Write *env* into *environ* (usually ``os.environ``), dropping empty values.

    Returns:
        The keys that were removed because their value is empty.
    """
    removed = []
    for key, value in env.items():
        if value:
            environ[key] = value
        elif key in environ:
            del environ[key]
            removed.append(key)
    return removed
