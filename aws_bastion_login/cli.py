"""Command line entry point.

Typical use from an interactive shell::

    eval "$(aws-bastion-login --eval prod admin)"

The first run prompts for an MFA code; later runs reuse the MFA session
exported into the shell until it expires.
"""

import argparse
import logging
import os
import subprocess
import sys
import time
from typing import List, Optional, Tuple

from aws_bastion_login import __version__
from aws_bastion_login.accounts import load_account_table
from aws_bastion_login.config import Settings, clamp_duration, load_dotenv_file, load_settings
from aws_bastion_login.console import (
    TerminalPrompter,
    format_duration,
    print_error,
    print_info,
    print_success,
    print_warning,
    setup_logging,
)
from aws_bastion_login.environment import (
    ACCOUNT_ALIAS,
    ACCOUNT_ID,
    ACCESS_KEY_ID,
    ROLE_NAME,
    apply_environment,
    materialize,
    read_session,
    render_exports,
    render_unsets,
)
from aws_bastion_login.errors import BastionLoginError, MissingDependencyError, RoleAssumptionError
from aws_bastion_login.inputs import Prompter, resolve_inputs, resolve_mfa_code
from aws_bastion_login.roles import assume_role
from aws_bastion_login.session import invalidate_session, refresh_session, session_remaining

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(time.time())


def _require_dependencies() -> None:
    try:
        import boto3  # noqa: F401
    except ImportError as e:
        raise MissingDependencyError("boto3 is required. Install with: pip3 install boto3") from e


def _split_command(argv: List[str]) -> Tuple[List[str], List[str]]:
    """Separate our arguments from the command to run after ``--``."""
    if '--' in argv:
        index = argv.index('--')
        return argv[:index], argv[index + 1:]
    return argv, []


def _make_prompter(args: argparse.Namespace) -> Optional[Prompter]:
    if args.no_input or not sys.stdin.isatty():
        return None
    return TerminalPrompter()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='aws-bastion-login',
        description='Exchange bastion credentials and an MFA code for short-lived role credentials',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  eval "$(%(prog)s --eval prod admin)"          Assume 'admin' in the 'prod' account
  eval "$(%(prog)s --eval prod admin 123456)"   Same, passing the MFA code
  %(prog)s prod read -- aws s3 ls              Run one command with the credentials
  %(prog)s --status                            Show the credentials of this shell
  eval "$(%(prog)s --clear)"                    Forget every exported credential
        """
    )
    parser.add_argument('account', nargs='?', help='Account alias or 12-digit id (default: default)')
    parser.add_argument('role', nargs='?', help='Role to assume (default: read)')
    parser.add_argument('mfa_code', nargs='?', help='MFA code, only needed when the MFA session expired')
    parser.add_argument('region', nargs='?', help='AWS region (default: AWS_REGION, AWS_DEFAULT_REGION, profile)')

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        '-e', '--eval',
        action='store_true',
        help='Print export statements for the calling shell to evaluate'
    )
    mode.add_argument(
        '-s', '--status',
        action='store_true',
        help='Describe the credentials exported in this shell'
    )
    mode.add_argument(
        '--clear',
        action='store_true',
        help='Print unset statements for every exported variable'
    )

    parser.add_argument(
        '-n', '--no-input',
        action='store_true',
        help='Never prompt; fail when a value is missing'
    )
    parser.add_argument(
        '-f', '--force',
        action='store_true',
        help='Ask for a new MFA session even if the current one is still valid'
    )
    parser.add_argument(
        '--session-timeout',
        type=int,
        help='MFA session duration in seconds (default: AWS_BASTION_SESSION_TIMEOUT or 43200)'
    )
    parser.add_argument(
        '--role-session-timeout',
        type=int,
        help='Role session duration in seconds (default: AWS_BASTION_ROLE_SESSION_TIMEOUT or 3600)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode with verbose logging'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def describe_environment(settings: Settings, now: int) -> None:
    """Print what the current shell holds: role credentials and the MFA session."""
    environ = os.environ
    if environ.get(ACCESS_KEY_ID) and environ.get(ROLE_NAME):
        print_info(f"Account: {environ.get(ACCOUNT_ALIAS, '')} ({environ.get(ACCOUNT_ID, '')})")
        print_info(f"Role:    {environ.get(ROLE_NAME)}")
        print_info(f"Region:  {environ.get('AWS_REGION', '')}")
    else:
        print_warning("No role credentials exported in this shell")

    session = read_session(environ)
    remaining = session_remaining(session, now)
    if session is None:
        print_warning(f"No MFA session (profile: {settings.default_profile})")
    elif remaining > 0:
        print_success(f"MFA session still valid for {format_duration(remaining)}")
    else:
        print_warning("MFA session expired, the next run will ask for an MFA code")


def _run(command: List[str]) -> int:
    if not command:
        command = [os.environ.get('SHELL', '/bin/sh')]
    logger.debug(f"Running {command}")
    try:
        return subprocess.run(command, env=dict(os.environ)).returncode
    except FileNotFoundError:
        print_error(f"Command not found: {command[0]}")
        return 127


def login(args: argparse.Namespace, settings: Settings, command: List[str]) -> int:
    """Resolve inputs, refresh the MFA session, assume the role and emit the result."""
    _require_dependencies()
    from aws_bastion_login.provider import IdentityProvider

    now = _now()
    prompter = _make_prompter(args)
    provider = IdentityProvider(settings.default_profile)

    session_timeout = settings.session_timeout
    if args.session_timeout is not None:
        session_timeout = clamp_duration(args.session_timeout, '--session-timeout')
    role_session_timeout = settings.role_session_timeout
    if args.role_session_timeout is not None:
        role_session_timeout = clamp_duration(args.role_session_timeout, '--role-session-timeout')

    inputs = resolve_inputs(
        args.account, args.role, args.mfa_code, args.region,
        environ=os.environ,
        account_table=load_account_table(settings.accounts_file),
        prompter=prompter,
        profile_region=provider.profile_region,
    )

    session, minted = refresh_session(
        read_session(os.environ),
        now,
        session_timeout,
        lambda: resolve_mfa_code(inputs.mfa_code, prompter),
        provider,
        force=args.force,
    )
    if minted:
        print_success(f"MFA session started, valid for {format_duration(session_remaining(session, now))}")
    else:
        print_info(f"MFA session still valid for {format_duration(session_remaining(session, now))}")

    try:
        credential = assume_role(
            provider, session, inputs.account_id, inputs.account_alias, inputs.role,
            role_session_timeout, now, inputs.region,
        )
    except RoleAssumptionError as e:
        print_error(str(e))
        print_warning("MFA session cleared, the next run will ask for an MFA code")
        session = invalidate_session(session)
        credential = None

    env = materialize(inputs.region, credential, session, inputs.account_alias, settings.default_profile)

    if credential is not None:
        print_success(f"{inputs.role}@{inputs.account_alias} ({inputs.account_id}) in {inputs.region}")

    if args.eval:
        print(render_exports(env))
        return 0 if credential is not None else 1

    apply_environment(env, os.environ)
    if credential is None:
        return 1
    return _run(command)


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    argv, command = _split_command(list(argv))
    args = build_parser().parse_args(argv)

    load_dotenv_file()
    settings = load_settings(os.environ)
    setup_logging(settings.log_dir, debug=args.debug)
    logger.info("AWS bastion login started")
    logger.debug(f"Arguments: account={args.account}, role={args.role}, region={args.region}, "
                 f"eval={args.eval}, force={args.force}, command={command}")

    if args.clear:
        print(render_unsets())
        return 0
    if args.status:
        describe_environment(settings, _now())
        return 0

    try:
        return login(args, settings, command)
    except BastionLoginError as e:
        print_error(str(e))
        return e.exit_code
    except (KeyboardInterrupt, EOFError):
        print("", file=sys.stderr)
        print_warning("Cancelled by user")
        return 130


if __name__ == '__main__':
    sys.exit(main())
