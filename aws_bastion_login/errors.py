"""Errors raised while resolving inputs, minting sessions and assuming roles."""


class BastionLoginError(Exception):
    """Base class for every failure the CLI reports to the user."""

    exit_code = 1


class MissingDependencyError(BastionLoginError):
    """A required library (boto3) is not installed."""


class InvalidAccountIdError(BastionLoginError):
    """The resolved account id is not exactly 12 digits."""


class MissingRoleError(BastionLoginError):
    pass


class MissingRegionError(BastionLoginError):
    pass


class MissingMfaCodeError(BastionLoginError):
    pass


class InvalidMfaCodeError(BastionLoginError):
    """The MFA code does not have the expected token format."""


class MfaDeviceLookupError(BastionLoginError):
    """The bastion user has no MFA device, or the lookup failed."""


class SessionTokenRequestError(BastionLoginError):
    """STS refused to issue an MFA session token."""


class RoleAssumptionError(BastionLoginError):
    """STS refused to assume the target role.

    Unlike the other errors this one invalidates the cached session, since the
    failure may mean the session itself was revoked.
    """
