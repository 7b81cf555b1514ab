"""
Fixed-point token amount.

Amount wraps a Decimal evaluated in a private high-precision context.
All monetary arithmetic goes through this type, never through float.
"""

from decimal import ROUND_DOWN, ROUND_HALF_EVEN, Context, Decimal, InvalidOperation
from functools import total_ordering
from typing import Any, Union

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from validator_rewards.constants import (
    AMOUNT_DECIMALS,
    AMOUNT_PRECISION,
    GWEI_PER_ETH,
    WEI_PER_ETH,
)
from validator_rewards.core.exceptions import CalculationError


_CONTEXT = Context(prec=AMOUNT_PRECISION, rounding=ROUND_HALF_EVEN)
_DISPLAY_QUANTUM = Decimal(1).scaleb(-AMOUNT_DECIMALS)

Operand = Union["Amount", Decimal, int]


def _to_decimal(value: Operand) -> Decimal:
    if isinstance(value, Amount):
        return value._value
    if isinstance(value, bool):
        raise TypeError("bool is not a valid amount")
    if isinstance(value, (Decimal, int)):
        return _CONTEXT.create_decimal(value)
    raise TypeError(f"unsupported operand type: {type(value).__name__}")


@total_ordering
class Amount:
    """
    Exact decimal token amount.

    Example:
        >>> annual = Amount(32) * Amount.parse("0.05") / Amount.parse("0.01")
        >>> str(annual * Amount.parse("0.5"))
        '80.000000000000000000'
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union["Amount", Decimal, int, str] = 0) -> None:
        if isinstance(value, str):
            value = self._parse_decimal(value)
        decimal_value = _to_decimal(value)
        if not decimal_value.is_finite():
            raise ValueError(f"amount must be finite, got {value}")
        self._value = decimal_value

    @staticmethod
    def _parse_decimal(text: str) -> Decimal:
        try:
            parsed = _CONTEXT.create_decimal(text.strip())
        except InvalidOperation as exc:
            raise ValueError(f"invalid amount: {text!r}") from exc
        if not parsed.is_finite():
            raise ValueError(f"invalid amount: {text!r}")
        return parsed

    @classmethod
    def parse(cls, text: str) -> "Amount":
        """Parse a decimal string such as ``"0.0088235294"``."""
        return cls(text)

    @classmethod
    def zero(cls) -> "Amount":
        return cls(0)

    @classmethod
    def from_wei(cls, wei: int) -> "Amount":
        """Build an amount from integer base units (10^-18)."""
        return cls(_CONTEXT.divide(_to_decimal(wei), Decimal(WEI_PER_ETH)))

    @classmethod
    def from_gwei(cls, gwei: int) -> "Amount":
        """Build an amount from integer Gwei units (10^-9)."""
        return cls(_CONTEXT.divide(_to_decimal(gwei), Decimal(GWEI_PER_ETH)))

    def to_wei(self) -> int:
        """Integer base units, truncated toward zero."""
        return self._scaled_int(WEI_PER_ETH)

    def to_gwei(self) -> int:
        """Integer Gwei units, truncated toward zero."""
        return self._scaled_int(GWEI_PER_ETH)

    def _scaled_int(self, scale: int) -> int:
        scaled = _CONTEXT.multiply(self._value, Decimal(scale))
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))

    @property
    def value(self) -> Decimal:
        return self._value

    def is_positive(self) -> bool:
        return self._value > 0

    def is_negative(self) -> bool:
        return self._value < 0

    def __add__(self, other: Operand) -> "Amount":
        return Amount(_CONTEXT.add(self._value, _to_decimal(other)))

    __radd__ = __add__

    def __sub__(self, other: Operand) -> "Amount":
        return Amount(_CONTEXT.subtract(self._value, _to_decimal(other)))

    def __rsub__(self, other: Operand) -> "Amount":
        return Amount(_CONTEXT.subtract(_to_decimal(other), self._value))

    def __mul__(self, other: Operand) -> "Amount":
        return Amount(_CONTEXT.multiply(self._value, _to_decimal(other)))

    __rmul__ = __mul__

    def __truediv__(self, other: Operand) -> "Amount":
        divisor = _to_decimal(other)
        if divisor == 0:
            raise CalculationError(f"division by zero: {self} / {other}")
        return Amount(_CONTEXT.divide(self._value, divisor))

    def __rtruediv__(self, other: Operand) -> "Amount":
        return Amount(other) / self

    def __neg__(self) -> "Amount":
        return Amount(_CONTEXT.minus(self._value))

    def __eq__(self, other: object) -> bool:
        try:
            return self._value == _to_decimal(other)  # type: ignore[arg-type]
        except TypeError:
            return NotImplemented

    def __lt__(self, other: Operand) -> bool:
        return self._value < _to_decimal(other)

    def __hash__(self) -> int:
        return hash(self._value)

    def __bool__(self) -> bool:
        return self._value != 0

    def __str__(self) -> str:
        display = self._value.quantize(
            _DISPLAY_QUANTUM, rounding=ROUND_HALF_EVEN, context=_CONTEXT
        )
        return f"{display:f}"

    def __repr__(self) -> str:
        return f"Amount('{self}')"

    @classmethod
    def coerce(cls, value: Any) -> "Amount":
        """
        Convert a configuration scalar into an Amount.

        Floats come from YAML documents and are converted through their
        shortest decimal representation, never used as binary values.
        """
        if isinstance(value, Amount):
            return value
        if isinstance(value, bool):
            raise ValueError("boolean is not a valid amount")
        if isinstance(value, float):
            return cls(str(value))
        if isinstance(value, (Decimal, int, str)):
            return cls(value)
        raise ValueError(f"invalid amount type: {type(value).__name__}")

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.coerce,
            serialization=core_schema.to_string_ser_schema(),
        )
