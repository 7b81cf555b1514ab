"""
Constants for validator rewards calculation.

Single source of truth for unit scales, the reference validator balance
and the plan features understood by the calculator.
"""

from enum import Enum


# Unit scales
WEI_PER_ETH = 10**18
GWEI_PER_ETH = 10**9
WEI_PER_GWEI = 10**9

# Amount arithmetic: 80 significant digits (~266 bits of mantissa)
AMOUNT_PRECISION = 80
AMOUNT_DECIMALS = 18

# Reference balance of a single validator, in ETH and in Gwei
VALIDATOR_BALANCE_ETH = 32
VALIDATOR_BALANCE_GWEI = VALIDATOR_BALANCE_ETH * GWEI_PER_ETH

MONTHS_PER_YEAR = 12

PERIOD_FORMAT = "%Y-%m"

# Export file names
BY_VALIDATOR_FILE = "by-validator.csv"
BY_OWNER_FILE = "by-owner.csv"
BY_RECIPIENT_FILE = "by-recipient.csv"
TOTAL_BY_VALIDATOR_FILE = "total-by-validator.csv"
TOTAL_BY_OWNER_FILE = "total-by-owner.csv"
TOTAL_BY_RECIPIENT_FILE = "total-by-recipient.csv"
CUMULATIVE_FILE = "cumulative.json"
EXCLUSIONS_FILE = "exclusions.csv"

PERFORMANCE_PROVIDERS = ("beaconcha", "e2m")


class Feature(str, Enum):
    """Optional behaviours a mechanics version can enable."""

    # Do not reward deployer addresses of Gnosis Safes
    GNOSIS_SAFE = "gnosis_safe"


AVAILABLE_FEATURES: frozenset[str] = frozenset(f.value for f in Feature)
