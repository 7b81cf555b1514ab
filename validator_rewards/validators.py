"""
Validators for addresses and keys appearing in plans and participation data.

Each ``validate_*`` function returns a tuple of
(is_valid, normalized_value, error_message); the ``normalize_*`` wrappers
raise ValueError instead, for use in pydantic validators.
"""

import re


EXECUTION_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
BLS_PUBLIC_KEY_PATTERN = re.compile(r"^0x[0-9a-fA-F]{96}$")


def validate_execution_address(value: str) -> tuple[bool, str | None, str | None]:
    """
    Validate an execution-layer address.

    Args:
        value: Address string, ``0x`` followed by 40 hex characters

    Returns:
        Tuple of (is_valid, lowercase_address, error_message)

    Examples:
        >>> validate_execution_address("0xAbC0000000000000000000000000000000000001")
        (True, '0xabc0000000000000000000000000000000000001', None)
        >>> validate_execution_address("abc")
        (False, None, "invalid execution address: 'abc'")
    """
    if not isinstance(value, str) or not value.strip():
        return False, None, "execution address cannot be empty"

    value = value.strip()
    if not EXECUTION_ADDRESS_PATTERN.match(value):
        return False, None, f"invalid execution address: {value!r}"

    return True, value.lower(), None


def validate_public_key(value: str) -> tuple[bool, str | None, str | None]:
    """
    Validate a BLS validator public key.

    Args:
        value: Public key string, ``0x`` followed by 96 hex characters

    Returns:
        Tuple of (is_valid, lowercase_key, error_message)
    """
    if not isinstance(value, str) or not value.strip():
        return False, None, "public key cannot be empty"

    value = value.strip()
    if not BLS_PUBLIC_KEY_PATTERN.match(value):
        return False, None, f"invalid BLS public key: {value!r}"

    return True, value.lower(), None


def normalize_execution_address(value: str) -> str:
    is_valid, address, error = validate_execution_address(value)
    if not is_valid:
        raise ValueError(error)
    return address


def normalize_public_key(value: str) -> str:
    is_valid, key, error = validate_public_key(value)
    if not is_valid:
        raise ValueError(error)
    return key
