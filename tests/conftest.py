"""Shared fixtures for tests."""

from __future__ import annotations

import os
import shlex
from typing import Dict, List, Optional
from unittest.mock import patch

import pytest

from aws_bastion_login.errors import MfaDeviceLookupError, RoleAssumptionError, SessionTokenRequestError
from aws_bastion_login.session import Session

MFA_SERIAL = "arn:aws:iam::111122223333:mfa/alice"
PROD_ID = "123456789012"


class FakeProvider:
    """Stand-in for ``IdentityProvider`` that records every call."""

    def __init__(self, profile: str = "bastion", region: Optional[str] = None,
                 devices: tuple = (MFA_SERIAL,), fail_assume: bool = False,
                 fail_session_token: bool = False) -> None:
        self.profile = profile
        self.region = region
        self.devices = list(devices)
        self.fail_assume = fail_assume
        self.fail_session_token = fail_session_token
        self.calls: List[tuple] = []
        self._issued = 0

    def profile_region(self) -> Optional[str]:
        self.calls.append(("profile_region",))
        return self.region

    def username(self) -> str:
        self.calls.append(("username",))
        return "alice"

    def first_mfa_device(self, username: str) -> str:
        self.calls.append(("first_mfa_device", username))
        if not self.devices:
            raise MfaDeviceLookupError(f"No MFA device registered for '{username}'")
        return self.devices[0]

    def session_token(self, serial: str, code: str, duration: int) -> Dict[str, str]:
        self.calls.append(("session_token", serial, code, duration))
        if self.fail_session_token:
            raise SessionTokenRequestError("Session token request failed: AccessDenied")
        self._issued += 1
        return {
            "AccessKeyId": f"ASIASESSION{self._issued}",
            "SecretAccessKey": f"session-secret-{self._issued}",
            "SessionToken": f"session-token-{self._issued}",
        }

    def assume_role(self, session_credentials, role_arn, external_id, duration, session_name, region=None):
        self.calls.append(("assume_role", session_credentials["AccessKeyId"], role_arn, external_id,
                           duration, session_name, region))
        if self.fail_assume:
            raise RoleAssumptionError(f"Unable to assume role {role_arn}: AccessDenied")
        return {
            "AccessKeyId": "ASIAROLE",
            "SecretAccessKey": "role-secret",
            "SessionToken": "role-token",
        }

    def names(self) -> List[str]:
        return [call[0] for call in self.calls]


class FakePrompter:
    """Returns canned answers; ``ask`` falls back to the default when out of answers."""

    def __init__(self, answers: Optional[Dict[str, str]] = None, secrets: Optional[List[str]] = None) -> None:
        self.answers = answers or {}
        self.secrets = list(secrets or [])
        self.asked: List[str] = []

    def ask(self, label: str, default: str) -> str:
        self.asked.append(label)
        return self.answers.get(label, "") or default

    def ask_secret(self, label: str) -> str:
        self.asked.append(label)
        return self.secrets.pop(0) if self.secrets else ""


def parse_exports(output: str) -> Dict[str, str]:
    env = {}
    for line in output.strip().splitlines():
        keyword, assignment = shlex.split(line)
        assert keyword == "export"
        key, _, value = assignment.partition("=")
        env[key] = value
    return env


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def active_session() -> Session:
    return Session(
        started_at=1_700_000_000,
        access_key_id="ASIASESSIONOLD",
        secret_access_key="old-secret",
        session_token="old-token",
    )


@pytest.fixture
def accounts_file(tmp_path):
    path = tmp_path / "bastion-accounts"
    path.write_text(f"[accounts]\nprod = {PROD_ID}\ndefault = 210987654321\n")
    return path


@pytest.fixture
def cli_env(tmp_path, accounts_file, monkeypatch):
    """A clean process environment with logs and the alias file under tmp_path."""
    monkeypatch.chdir(tmp_path)
    base = {
        "HOME": str(tmp_path),
        "AWS_BASTION_LOG_DIR": str(tmp_path / "logs"),
        "AWS_BASTION_ACCOUNTS_FILE": str(accounts_file),
    }
    with patch.dict(os.environ, base, clear=True):
        yield base
