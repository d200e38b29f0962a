"""Resolve account, role, region and MFA code from arguments, environment and prompts.

Each field has a fixed precedence. Prompting goes through an injected
``Prompter``; passing ``None`` means non-interactive, in which case a field
that cannot be resolved from earlier sources is a fatal error rather than a
blocking prompt.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Protocol

from aws_bastion_login.accounts import resolve_account_id
from aws_bastion_login.config import (
    DEFAULT_ACCOUNT_ALIAS,
    DEFAULT_REGION,
    DEFAULT_ROLE,
    MFA_MAX_ATTEMPTS,
    MFA_TOKEN_LENGTH,
)
from aws_bastion_login.errors import (
    InvalidMfaCodeError,
    MissingMfaCodeError,
    MissingRegionError,
    MissingRoleError,
)

logger = logging.getLogger(__name__)


class Prompter(Protocol):
    def ask(self, label: str, default: str) -> str:
        ...

    def ask_secret(self, label: str) -> str:
        ...


@dataclass(frozen=True)
class ResolvedInputs:
    account_alias: str
    account_id: str
    role: str
    region: str
    mfa_code: Optional[str] = None  # Explicit argument only; prompting happens on demand


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def resolve_account_alias(explicit: Optional[str], prompter: Optional[Prompter]) -> str:
    alias = _clean(explicit)
    if alias:
        return alias
    if prompter is not None:
        alias = _clean(prompter.ask("Account alias or id", DEFAULT_ACCOUNT_ALIAS))
    return alias or DEFAULT_ACCOUNT_ALIAS


def resolve_role(explicit: Optional[str], prompter: Optional[Prompter]) -> str:
    role = _clean(explicit)
    if not role and prompter is not None:
        role = _clean(prompter.ask("Role", DEFAULT_ROLE))
    if not role:
        raise MissingRoleError("No role given (pass it as the second argument)")
    return role


def resolve_region(explicit: Optional[str],
                   environ: Mapping[str, str],
                   profile_region: Optional[Callable[[], Optional[str]]],
                   prompter: Optional[Prompter]) -> str:
    """Pick the region: argument, AWS_REGION, AWS_DEFAULT_REGION, profile, prompt.

    Args:
        profile_region: Lazily returns the region configured for the bastion
            profile; only called when the environment has none.
    """
    region = _clean(explicit)
    if region:
        return region

    for name in ('AWS_REGION', 'AWS_DEFAULT_REGION'):
        region = _clean(environ.get(name))
        if region:
            logger.debug(f"Using region {region} from {name}")
            return region

    if profile_region is not None:
        region = _clean(profile_region())
        if region:
            logger.debug(f"Using region {region} from the profile configuration")
            return region

    if prompter is not None:
        region = _clean(prompter.ask("Region", DEFAULT_REGION))
    if not region:
        raise MissingRegionError("No region given and none configured (set AWS_REGION or pass it as the fourth argument)")
    return region


def is_mfa_code(value: str) -> bool:
    return value.isdigit() and len(value) == MFA_TOKEN_LENGTH


def resolve_mfa_code(explicit: Optional[str], prompter: Optional[Prompter]) -> str:
    """Return the MFA code from the argument or a masked prompt.

    Only called when a new session has to be minted.

    Raises:
        MissingMfaCodeError: no code given and prompting is not possible.
        InvalidMfaCodeError: the code is not a 6-digit token.
    """
    code = _clean(explicit)
    if code:
        if not is_mfa_code(code):
            raise InvalidMfaCodeError(f"MFA token must be {MFA_TOKEN_LENGTH} digits")
        return code

    if prompter is None:
        raise MissingMfaCodeError("MFA session expired and no MFA code given (pass it as the third argument)")

    for attempt in range(1, MFA_MAX_ATTEMPTS + 1):
        label = "MFA code"
        if attempt > 1:
            label = f"MFA code ({attempt}/{MFA_MAX_ATTEMPTS})"
        code = _clean(prompter.ask_secret(label))
        if not code:
            raise MissingMfaCodeError("MFA code is required")
        if is_mfa_code(code):
            return code
        logger.warning(f"MFA token must be {MFA_TOKEN_LENGTH} digits (attempt {attempt}/{MFA_MAX_ATTEMPTS})")

    raise InvalidMfaCodeError(f"No valid {MFA_TOKEN_LENGTH}-digit MFA token after {MFA_MAX_ATTEMPTS} attempts")


def resolve_inputs(account: Optional[str],
                   role: Optional[str],
                   mfa_code: Optional[str],
                   region: Optional[str],
                   *,
                   environ: Mapping[str, str],
                   account_table: Mapping[str, str],
                   prompter: Optional[Prompter] = None,
                   profile_region: Optional[Callable[[], Optional[str]]] = None) -> ResolvedInputs:
    """Resolve every positional input, validating the account id on the way.

    Raises:
        InvalidAccountIdError, MissingRoleError, MissingRegionError
    """
    account_alias = resolve_account_alias(account, prompter)
    account_id = resolve_account_id(account_alias, account_table)
    resolved_role = resolve_role(role, prompter)
    resolved_region = resolve_region(region, environ, profile_region, prompter)

    logger.debug(f"Inputs resolved: account={account_alias} ({account_id}), role={resolved_role}, region={resolved_region}")
    return ResolvedInputs(
        account_alias=account_alias,
        account_id=account_id,
        role=resolved_role,
        region=resolved_region,
        mfa_code=_clean(mfa_code) or None,
    )
