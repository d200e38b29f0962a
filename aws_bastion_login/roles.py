"""Role assumption on top of an MFA session."""

import logging
from dataclasses import dataclass
from typing import Optional

from aws_bastion_login.session import Session

logger = logging.getLogger(__name__)

SESSION_NAME_PREFIX = "aws-bastion-login"


@dataclass(frozen=True)
class RoleCredential:
    """Short-lived credentials for one account and role."""

    access_key_id: str
    secret_access_key: str
    session_token: str
    account_id: str
    account_alias: str
    role_name: str
    session_name: str = ""


def role_arn(account_id: str, role: str) -> str:
    return f"arn:aws:iam::{account_id}:role/{role}"


def role_session_name(now: int) -> str:
    """Assumed-role session name, unique per invocation second."""
    return f"{SESSION_NAME_PREFIX}-{now}"


def assume_role(provider, session: Session, account_id: str, account_alias: str,
                role: str, duration: int, now: int, region: Optional[str] = None) -> RoleCredential:
    """Assume *role* in *account_id* with the session's credentials.

    The external id is the account id itself.

    Raises:
        RoleAssumptionError: on any AWS, network or response error. The
            caller is expected to invalidate the session.
    """
    arn = role_arn(account_id, role)
    session_name = role_session_name(now)
    credentials = provider.assume_role(
        session.credentials,
        arn,
        account_id,
        duration,
        session_name,
        region,
    )
    logger.info(f"Assumed {arn} as {session_name} for {duration}s")
    return RoleCredential(
        access_key_id=credentials['AccessKeyId'],
        secret_access_key=credentials['SecretAccessKey'],
        session_token=credentials['SessionToken'],
        account_id=account_id,
        account_alias=account_alias,
        role_name=role,
        session_name=session_name,
    )
