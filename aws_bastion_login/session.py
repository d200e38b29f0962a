"""MFA session lifecycle.

The session is a two-state machine: absent (``None``) or an active
``Session``. ``refresh_session`` is the only transition into the active
state, and it contacts AWS only when the cached session is absent or about to
expire. Invalidation is performed by the caller (``invalidate_session``) when
role assumption fails.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from aws_bastion_login.config import DEFAULT_SESSION_TIMEOUT, SAFETY_MARGIN

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """MFA-authenticated session credentials, when they were issued and for how long."""

    started_at: int
    access_key_id: str
    secret_access_key: str
    session_token: str
    duration: int = DEFAULT_SESSION_TIMEOUT

    @property
    def credentials(self) -> Dict[str, str]:
        """The credentials in the shape boto3 and STS responses use."""
        return {
            'AccessKeyId': self.access_key_id,
            'SecretAccessKey': self.secret_access_key,
            'SessionToken': self.session_token,
        }

    def __str__(self) -> str:
        return f"Session(key={self.access_key_id[:8]}..., started_at={self.started_at}, duration={self.duration})"


def _lifetime(session: Optional[Session], timeout: Optional[int]) -> int:
    if timeout is not None:
        return timeout
    return session.duration if session is not None else DEFAULT_SESSION_TIMEOUT


def session_expired(session: Optional[Session], now: int, timeout: Optional[int] = None) -> bool:
    """True when the session is absent or older than ``timeout - SAFETY_MARGIN``.

    ``timeout`` defaults to the duration the session was issued with.
    """
    started_at = session.started_at if session is not None else 0
    elapsed = now - started_at
    threshold = _lifetime(session, timeout) - SAFETY_MARGIN
    return threshold < elapsed


def session_remaining(session: Optional[Session], now: int, timeout: Optional[int] = None) -> int:
    """Seconds left before the session is considered expired (0 if already expired)."""
    if session is None:
        return 0
    return max(0, _lifetime(session, timeout) - SAFETY_MARGIN - (now - session.started_at))


def invalidate_session(session: Optional[Session]) -> None:
    """Drop *session*; the absent state is ``None``."""
    if session is not None:
        logger.info(f"{session} invalidated, the next run will ask for an MFA code")
    return None


def mint_session(provider, mfa_code: str, now: int, duration: int) -> Session:
    """Create a new session from an MFA code.

    Args:
        provider: ``IdentityProvider`` (or a stand-in) bound to the bastion profile.
        mfa_code: The 6-digit token.
        now: Issue timestamp recorded as ``started_at``.
        duration: Requested session lifetime in seconds, recorded on the session.

    Raises:
        MfaDeviceLookupError: the user has no MFA device or the lookup failed.
        SessionTokenRequestError: STS rejected the request.
    """
    username = provider.username()
    serial = provider.first_mfa_device(username)
    credentials = provider.session_token(serial, mfa_code, duration)
    session = Session(
        started_at=now,
        access_key_id=credentials['AccessKeyId'],
        secret_access_key=credentials['SecretAccessKey'],
        session_token=credentials['SessionToken'],
        duration=duration,
    )
    logger.info(f"New MFA session for {username}: {session}")
    return session


def refresh_session(session: Optional[Session],
                    now: int,
                    timeout: int,
                    mfa_code: Callable[[], str],
                    provider,
                    force: bool = False) -> Tuple[Session, bool]:
    """Return a usable session, minting a new one only when needed.

    Args:
        session: The cached session, or ``None``.
        now: Current time in seconds since the epoch.
        timeout: Duration requested from STS for a new session. A cached
            session expires by the duration it was issued with.
        mfa_code: Called for the MFA code only when a new session is minted,
            before any AWS call is made.
        provider: Identity provider used for minting.
        force: Mint a new session even if the cached one is still valid.

    Returns:
        ``(session, minted)`` where ``minted`` tells whether AWS was contacted.
    """
    if session is not None and not force and not session_expired(session, now):
        logger.debug(f"Reusing {session}, {session_remaining(session, now)}s left")
        return session, False

    if session is None:
        logger.debug("No MFA session, minting one")
    elif force:
        logger.debug("Forced re-authentication")
    else:
        logger.debug(f"{session} expired, minting a new one")

    code = mfa_code()
    return mint_session(provider, code, now, timeout), True
