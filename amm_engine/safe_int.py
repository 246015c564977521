"""Checked unsigned integer wrapper for reserve, share and amount arithmetic.

Every quantity the engine stores (reserves, share balances, transfer amounts)
behaves like an EVM uint256: it can never be negative and never exceed
2**256 - 1. SafeInt enforces that on every operation instead of at the end:
- Addition and multiplication past UINT256_MAX raise Overflow
- Subtraction below zero raises Underflow
- Division or modulo by zero raises DivisionByZero

Usage pattern:
    from amm_engine.safe_int import S

    def shares_for(amount: int, total: int, reserve: int) -> int:
        # Wrap at entry
        sa, st, sr = S(amount), S(total), S(reserve)

        # Natural arithmetic - every step checked
        return ((sa * st) // sr).value
"""

from __future__ import annotations

from amm_engine.errors import DivisionByZero, Overflow, Underflow

UINT256_MAX = 2**256 - 1


class SafeInt:
    """Unsigned 256-bit integer with checked arithmetic.

    Construction rejects values outside [0, UINT256_MAX], so a SafeInt is
    always a valid uint256. Results of arithmetic are validated before a new
    SafeInt is returned; nothing ever wraps silently.

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        """Create a SafeInt from an integer or another SafeInt.

        Args:
            value: Integer value to wrap, or SafeInt to copy

        Raises:
            TypeError: If value is not an int or SafeInt (bool is rejected)
            Underflow: If value is negative
            Overflow: If value exceeds UINT256_MAX
        """
        if isinstance(value, SafeInt):
            self._value = value._value
            return
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")
        self._value = _check_range(value, f"SafeInt({value})")

    @property
    def value(self) -> int:
        """The underlying integer value."""
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __hash__(self) -> int:
        return hash(self._value)

    # --- Arithmetic operations ---

    def __add__(self, other: SafeInt | int) -> SafeInt:
        """Add two values.

        Raises:
            Overflow: If the sum exceeds UINT256_MAX
        """
        other_val = _extract_value(other)
        return _checked(self._value + other_val, f"{self._value} + {other_val}")

    def __radd__(self, other: int) -> SafeInt:
        return _checked(other + self._value, f"{other} + {self._value}")

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Subtract other from self.

        Raises:
            Underflow: If result would be negative
        """
        other_val = _extract_value(other)
        return _checked(self._value - other_val, f"{self._value} - {other_val}")

    def __rsub__(self, other: int) -> SafeInt:
        return _checked(other - self._value, f"{other} - {self._value}")

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        """Multiply two values.

        Raises:
            Overflow: If the product exceeds UINT256_MAX
        """
        other_val = _extract_value(other)
        return _checked(self._value * other_val, f"{self._value} * {other_val}")

    def __rmul__(self, other: int) -> SafeInt:
        return _checked(other * self._value, f"{other} * {self._value}")

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Integer division.

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Division by zero: {self._value} // 0")
        return _checked(self._value // other_val, f"{self._value} // {other_val}")

    def __rfloordiv__(self, other: int) -> SafeInt:
        if self._value == 0:
            raise DivisionByZero(f"Division by zero: {other} // 0")
        return _checked(other // self._value, f"{other} // {self._value}")

    def __mod__(self, other: SafeInt | int) -> SafeInt:
        """Modulo operation.

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Modulo by zero: {self._value} % 0")
        return _checked(self._value % other_val, f"{self._value} % {other_val}")

    def __truediv__(self, other: object) -> SafeInt:
        raise TypeError("SafeInt does not support true division; use floor division (//)")

    def __rtruediv__(self, other: object) -> SafeInt:
        raise TypeError("SafeInt does not support true division; use floor division (//)")

    # --- Comparison operations ---

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return NotImplemented
        return not result

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _extract_value(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _extract_value(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _extract_value(other)

    # --- Conversion ---

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        """True if non-zero."""
        return self._value != 0

    def __index__(self) -> int:
        return self._value

    # --- Named operations ---

    def min(self, other: SafeInt | int) -> SafeInt:
        """Return minimum of self and other."""
        return SafeInt(min(self._value, _extract_value(other)))

    def isqrt(self) -> SafeInt:
        """Floor of the square root, by integer Newton iteration.

        Starting from x and repeatedly averaging with x // guess, the guess
        strictly decreases until it reaches floor(sqrt(x)).
        """
        x = self._value
        if x < 2:
            return SafeInt(x)
        guess = x
        nxt = (guess + x // guess) // 2
        while nxt < guess:
            guess = nxt
            nxt = (guess + x // guess) // 2
        return SafeInt(guess)


def _check_range(raw: int, expr: str) -> int:
    """Validate a raw result against uint256 bounds."""
    if raw < 0:
        raise Underflow(f"Underflow: {expr} = {raw}")
    if raw > UINT256_MAX:
        raise Overflow(f"Overflow: {expr} exceeds uint256 max")
    return raw


def _checked(result: int, expr: str) -> SafeInt:
    """Wrap an arithmetic result after range validation."""
    out = SafeInt.__new__(SafeInt)
    out._value = _check_range(result, expr)
    return out


def _extract_value(x: SafeInt | int) -> int:
    """Extract integer value from SafeInt or int."""
    if isinstance(x, SafeInt):
        return x._value
    return x


# Convenience alias for concise code
S = SafeInt
