"""Account alias lookup and account id validation."""

import configparser
import logging
import re
from pathlib import Path
from typing import Dict, Mapping

from aws_bastion_login.errors import InvalidAccountIdError

logger = logging.getLogger(__name__)

ACCOUNTS_SECTION = "accounts"
ACCOUNT_ID_PATTERN = re.compile(r'[0-9]{12}')


def load_account_table(path: Path) -> Dict[str, str]:
    """Read the alias -> account id table from an INI file.

    The file holds a single ``[accounts]`` section::

        [accounts]
        prod = 123456789012
        staging = 210987654321

    A missing file or section yields an empty table, so every input is then
    treated as a literal account id.
    """
    parser = configparser.ConfigParser()
    parser.optionxform = str  # Aliases are case-sensitive
    if not path.exists():
        logger.debug(f"Account alias file not found: {path}")
        return {}

    parser.read(path)
    if not parser.has_section(ACCOUNTS_SECTION):
        logger.debug(f"No [{ACCOUNTS_SECTION}] section in {path}")
        return {}

    table = {alias: value.strip() for alias, value in parser.items(ACCOUNTS_SECTION, raw=True)}
    logger.debug(f"Loaded {len(table)} account alias(es) from {path}")
    return table


def is_account_id(value: str) -> bool:
    return ACCOUNT_ID_PATTERN.fullmatch(value) is not None


def resolve_account_id(alias_or_id: str, table: Mapping[str, str]) -> str:
    """Map an alias to its account id, falling through to the input itself.

    Raises:
        InvalidAccountIdError: if the candidate is not exactly 12 ASCII digits.
    """
    candidate = table.get(alias_or_id, alias_or_id)
    if not is_account_id(candidate):
        raise InvalidAccountIdError(
            f"Invalid account id {candidate!r} for {alias_or_id!r}: expected 12 digits"
        )
    if candidate != alias_or_id:
        logger.debug(f"Resolved account alias {alias_or_id} -> {candidate}")
    return candidate
