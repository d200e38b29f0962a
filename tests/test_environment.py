"""Tests for reading and writing credentials as environment variables."""

from __future__ import annotations

import pytest

from aws_bastion_login.environment import (
    MATERIALIZED_KEYS,
    apply_environment,
    materialize,
    read_session,
    render_exports,
    render_unsets,
)
from aws_bastion_login.roles import RoleCredential
from aws_bastion_login.session import Session

from conftest import parse_exports

ROLE = RoleCredential(
    access_key_id="ASIAROLE",
    secret_access_key="role/secret+key",
    session_token="role-token",
    account_id="123456789012",
    account_alias="prod",
    role_name="admin",
)
SESSION = Session(started_at=1_700_000_000, access_key_id="ASIASESSION",
                  secret_access_key="session-secret", session_token="session-token")


class TestMaterialize:
    def test_full_mapping(self) -> None:
        env = materialize("eu-west-1", ROLE, SESSION, "prod", "bastion")
        assert list(env) == list(MATERIALIZED_KEYS)
        assert env == {
            "AWS_REGION": "eu-west-1",
            "AWS_DEFAULT_REGION": "eu-west-1",
            "AWS_ACCESS_KEY_ID": "ASIAROLE",
            "AWS_SECRET_ACCESS_KEY": "role/secret+key",
            "AWS_SESSION_TOKEN": "role-token",
            "AWS_SECURITY_TOKEN": "role-token",
            "AWS_ACCOUNT_ID": "123456789012",
            "AWS_ACCOUNT_ALIAS": "prod",
            "AWS_ROLE_NAME": "admin",
            "AWS_BASTION_ACCESS_KEY_ID": "ASIASESSION",
            "AWS_BASTION_SECRET_ACCESS_KEY": "session-secret",
            "AWS_BASTION_SESSION_TOKEN": "session-token",
            "AWS_BASTION_SECURITY_TOKEN": "session-token",
            "AWS_BASTION_SESSION_START": "1700000000",
            "AWS_BASTION_SESSION_DURATION": "43200",
            "AWS_ENV": "prod",
            "AWS_BASTION_DEFAULT_PROFILE": "bastion",
        }

    def test_failed_run_blanks_credentials(self) -> None:
        env = materialize("eu-west-1", None, None, "prod", "bastion")
        assert list(env) == list(MATERIALIZED_KEYS)
        for key in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SESSION_TOKEN", "AWS_SECURITY_TOKEN",
                    "AWS_BASTION_ACCESS_KEY_ID", "AWS_BASTION_SESSION_START", "AWS_BASTION_SESSION_DURATION"):
            assert env[key] == ""
        assert env["AWS_REGION"] == "eu-west-1"
        assert env["AWS_ENV"] == "prod"


class TestReadSession:
    def test_round_trip(self) -> None:
        env = materialize("eu-west-1", ROLE, SESSION, "prod", "bastion")
        assert read_session(env) == SESSION

    def test_empty_environment(self) -> None:
        assert read_session({}) is None

    def test_missing_start(self) -> None:
        env = materialize("eu-west-1", ROLE, SESSION, "prod", "bastion")
        env["AWS_BASTION_SESSION_START"] = ""
        assert read_session(env) is None

    def test_garbage_start(self) -> None:
        env = materialize("eu-west-1", ROLE, SESSION, "prod", "bastion")
        env["AWS_BASTION_SESSION_START"] = "yesterday"
        assert read_session(env) is None

    def test_missing_credential(self) -> None:
        env = materialize("eu-west-1", ROLE, SESSION, "prod", "bastion")
        env["AWS_BASTION_SESSION_TOKEN"] = ""
        assert read_session(env) is None

    def test_duration_round_trip(self) -> None:
        short = Session(started_at=1_700_000_000, access_key_id="ASIASESSION",
                        secret_access_key="session-secret", session_token="session-token", duration=900)
        env = materialize("eu-west-1", ROLE, short, "prod", "bastion")
        assert env["AWS_BASTION_SESSION_DURATION"] == "900"
        assert read_session(env).duration == 900

    @pytest.mark.parametrize("raw", ["", "soon", "-5", "0"])
    def test_unreadable_duration_falls_back_to_default(self, raw) -> None:
        env = materialize("eu-west-1", ROLE, SESSION, "prod", "bastion")
        env["AWS_BASTION_SESSION_DURATION"] = raw
        assert read_session(env).duration == 43200


class TestRender:
    def test_exports_parse_back(self) -> None:
        env = materialize("eu-west-1", ROLE, SESSION, "prod", "bastion")
        output = render_exports(env)
        assert len(output.splitlines()) == len(MATERIALIZED_KEYS)
        assert all(line.startswith("export ") for line in output.splitlines())
        assert parse_exports(output) == env

    def test_empty_values_exported(self) -> None:
        output = render_exports({"AWS_ACCESS_KEY_ID": ""})
        assert output == "export AWS_ACCESS_KEY_ID=''"

    def test_unsets(self) -> None:
        lines = render_unsets().splitlines()
        assert lines[0] == "unset AWS_REGION"
        assert len(lines) == len(MATERIALIZED_KEYS)


class TestApplyEnvironment:
    def test_sets_and_removes(self) -> None:
        environ = {"AWS_ACCESS_KEY_ID": "stale", "PATH": "/bin"}
        removed = apply_environment({"AWS_REGION": "eu-west-1", "AWS_ACCESS_KEY_ID": ""}, environ)
        assert environ == {"AWS_REGION": "eu-west-1", "PATH": "/bin"}
        assert removed == ["AWS_ACCESS_KEY_ID"]
