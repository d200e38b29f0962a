"""Thin boto3 wrapper around the IAM and STS calls the login flow needs.

Calls made before MFA (user and device lookup, session token) run under the
long-lived bastion profile. Role assumption runs under the MFA session's
temporary credentials.
"""

import logging
from typing import Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from aws_bastion_login import __version__
from aws_bastion_login.errors import (
    MfaDeviceLookupError,
    RoleAssumptionError,
    SessionTokenRequestError,
)

logger = logging.getLogger(__name__)

# Custom User-Agent suffix for AWS API calls
BOTO_CONFIG = Config(user_agent_extra=f'aws-bastion-login/{__version__}')


def _error_code(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return exc.response.get('Error', {}).get('Code', 'Unknown')
    return type(exc).__name__


def _credentials(response: Dict) -> Dict[str, str]:
    credentials = (response.get('Credentials') if isinstance(response, dict) else None) or {}
    missing = [key for key in ('AccessKeyId', 'SecretAccessKey', 'SessionToken') if not credentials.get(key)]
    if missing:
        raise KeyError(f"response missing {', '.join(missing)}")
    return credentials


class IdentityProvider:
    """IAM/STS operations against a single bastion profile."""

    def __init__(self, profile: str) -> None:
        self._profile = profile
        self._session: Optional[boto3.session.Session] = None

    @property
    def profile(self) -> str:
        return self._profile

    def _bastion_session(self) -> boto3.session.Session:
        if self._session is None:
            self._session = boto3.Session(profile_name=self._profile)
        return self._session

    def profile_region(self) -> Optional[str]:
        """Region configured for the bastion profile, if any. Reads local config only."""
        try:
            return self._bastion_session().region_name
        except BotoCoreError as e:
            logger.debug(f"Could not read region for profile {self._profile}: {e}")
            return None

    def username(self) -> str:
        """IAM user name behind the bastion credential."""
        try:
            iam = self._bastion_session().client('iam', config=BOTO_CONFIG)
            username = iam.get_user()['User']['UserName']
        except (BotoCoreError, ClientError, KeyError) as e:
            logger.debug(f"get_user failed for profile {self._profile}: {_error_code(e)} - {e}")
            raise MfaDeviceLookupError(f"Could not look up the IAM user for profile '{self._profile}': {e}") from e
        logger.debug(f"Bastion user: {username}")
        return username

    def first_mfa_device(self, username: str) -> str:
        """Serial number of the user's first MFA device; any further devices are ignored."""
        try:
            iam = self._bastion_session().client('iam', config=BOTO_CONFIG)
            devices = iam.list_mfa_devices(UserName=username)['MFADevices']
        except (BotoCoreError, ClientError, KeyError) as e:
            logger.debug(f"list_mfa_devices failed for {username}: {_error_code(e)} - {e}")
            raise MfaDeviceLookupError(f"Could not list MFA devices for '{username}': {e}") from e

        if not devices:
            raise MfaDeviceLookupError(f"No MFA device registered for '{username}'")
        if len(devices) > 1:
            logger.info(f"{len(devices)} MFA devices registered for {username}, using the first")
        serial = devices[0]['SerialNumber']
        logger.debug(f"Using MFA device {serial}")
        return serial

    def session_token(self, serial: str, code: str, duration: int) -> Dict[str, str]:
        """Request temporary session credentials using MFA."""
        logger.debug(f"Requesting session token for profile={self._profile}, mfa_serial={serial}, duration={duration}s")
        try:
            sts = self._bastion_session().client('sts', config=BOTO_CONFIG)
            response = sts.get_session_token(
                DurationSeconds=duration,
                SerialNumber=serial,
                TokenCode=code,
            )
            credentials = _credentials(response)
        except (BotoCoreError, ClientError, KeyError) as e:
            logger.debug(f"get_session_token failed: {_error_code(e)} - {e}")
            raise SessionTokenRequestError(f"Session token request failed: {e}") from e

        logger.debug(f"Session token obtained, key {credentials['AccessKeyId'][:8]}..., expires: {credentials.get('Expiration')}")
        return credentials

    def assume_role(self, session_credentials: Dict[str, str], role_arn: str, external_id: str,
                    duration: int, session_name: str, region: Optional[str] = None) -> Dict[str, str]:
        """Assume *role_arn* using the MFA session's credentials."""
        logger.debug(f"Assuming {role_arn} as {session_name} for {duration}s")
        try:
            sts = boto3.Session(
                aws_access_key_id=session_credentials['AccessKeyId'],
                aws_secret_access_key=session_credentials['SecretAccessKey'],
                aws_session_token=session_credentials['SessionToken'],
                region_name=region,
            ).client('sts', config=BOTO_CONFIG)
            response = sts.assume_role(
                RoleArn=role_arn,
                RoleSessionName=session_name,
                ExternalId=external_id,
                DurationSeconds=duration,
            )
            credentials = _credentials(response)
        except (BotoCoreError, ClientError, KeyError) as e:
            logger.debug(f"assume_role failed: {_error_code(e)} - {e}")
            raise RoleAssumptionError(f"Unable to assume role {role_arn}: {e}") from e

        logger.debug(f"Assumed role, key {credentials['AccessKeyId'][:8]}...")
        return credentials
