"""Fixed-point arithmetic for LMSR pricing.

Every real value is an int scaled by SCALE (10**18): 1.0 == 10**18.
No float anywhere in the pricing path. Results are bounded by MAX_UINT256
so values stay representable by the on-chain custody collaborator.

Domain contracts:
  mul_scaled / div_scaled   operands >= 0
  exp_neg(x), exp(x)        0 <= x <= EXP_MAX_INPUT
  ln(y)                     y >= SCALE (real value >= 1)
"""

from decimal import Decimal, localcontext

from src.pm_common.errors import (
    ArithmeticOverflowError,
    DivisionByZeroError,
    OutOfRangeError,
)

SCALE = 10**18
MAX_UINT256 = 2**256 - 1

E_SCALED = 2_718281828459045235
LN2_SCALED = 693147180559945309
SQRT2_SCALED = 1_414213562373095049
HALF_SQRT2_SCALED = 707106781186547524

# e^-40 is the smallest power still non-zero at 18 decimals (~4.2e-18)
EXP_MAX_INPUT = 40 * SCALE
EXP_SERIES_TERMS = 24  # 1/24! < 1e-23, below one scaled unit on [0, 1)

# atanh series on |z| <= (sqrt2 - 1) / (sqrt2 + 1) ~= 0.1716
LN_SERIES_TERMS = 8
LN_MAX_ERROR = 10**5  # 1e-13 in real terms; truncation bound 2*z^17/17 ~= 1.2e-14


def _require_non_negative(name: str, value: int) -> None:
    if value < 0:
        raise OutOfRangeError(f"{name} must be >= 0, got {value}")


def mul_scaled(a: int, b: int, round_up: bool = False) -> int:
    """a * b / SCALE. Floors unless round_up."""
    _require_non_negative("a", a)
    _require_non_negative("b", b)
    product = a * b
    if product > MAX_UINT256:
        raise ArithmeticOverflowError(f"{a} * {b} exceeds uint256")
    result, remainder = divmod(product, SCALE)
    if round_up and remainder:
        result += 1
    return result


def div_scaled(a: int, b: int, round_up: bool = False) -> int:
    """a * SCALE / b. Floors unless round_up."""
    _require_non_negative("a", a)
    _require_non_negative("b", b)
    if b == 0:
        raise DivisionByZeroError(f"div_scaled({a}, 0)")
    numerator = a * SCALE
    if numerator > MAX_UINT256:
        raise ArithmeticOverflowError(f"{a} * SCALE exceeds uint256")
    result, remainder = divmod(numerator, b)
    if round_up and remainder:
        result += 1
    return result


def _exp_fraction(f: int) -> int:
    """e^f for 0 <= f < SCALE by Taylor series. All terms positive."""
    total = SCALE
    term = SCALE
    for k in range(1, EXP_SERIES_TERMS + 1):
        term = term * f // (k * SCALE)
        if term == 0:
            break
        total += term
    return total


def exp(x: int) -> int:
    """e^x for 0 <= x <= EXP_MAX_INPUT.

    Integer part comes from powers of the scaled constant e, the fractional
    part from a fixed-order Taylor series.
    """
    if x < 0 or x > EXP_MAX_INPUT:
        raise OutOfRangeError(f"exp input {x} outside [0, {EXP_MAX_INPUT}]")
    n, f = divmod(x, SCALE)
    integer_part = SCALE if n == 0 else E_SCALED**n // SCALE ** (n - 1)
    return integer_part * _exp_fraction(f) // SCALE


def exp_neg(x: int) -> int:
    """e^(-x) for 0 <= x <= EXP_MAX_INPUT. Result in (0, SCALE]."""
    if x < 0 or x > EXP_MAX_INPUT:
        raise OutOfRangeError(f"exp_neg input {x} outside [0, {EXP_MAX_INPUT}]")
    if x == 0:
        return SCALE
    return SCALE * SCALE // exp(x)


def _reduce(y: int) -> tuple[int, int]:
    """Return (m, k) with y == m * 2**k and m in [1/sqrt2, sqrt2).

    k is a signed count of halvings (positive) or doublings (negative).
    """
    k = 0
    while y >= SQRT2_SCALED << k:
        k += 1
    m = y >> k
    while m < HALF_SQRT2_SCALED:
        m <<= 1
        k -= 1
    return m, k


def ln(y: int) -> int:
    """Natural log for y >= SCALE. Accurate to LN_MAX_ERROR.

    ln(y) = k * ln2 + ln(m), ln(m) = 2 * atanh((m - 1) / (m + 1)).
    """
    if y < SCALE:
        raise OutOfRangeError(f"ln input {y} below domain minimum {SCALE}")
    m, k = _reduce(y)

    negative = m < SCALE
    z = abs(m - SCALE) * SCALE // (m + SCALE)
    z_squared = z * z // SCALE
    series = 0
    term = z
    for i in range(LN_SERIES_TERMS):
        series += term // (2 * i + 1)
        term = term * z_squared // SCALE
    ln_m = -2 * series if negative else 2 * series

    return k * LN2_SCALED + ln_m


def to_scaled(value: str | int | Decimal) -> int:
    """Convert a decimal value ('12.5') to its scaled int. Truncates below 1e-18."""
    with localcontext() as ctx:
        ctx.prec = 90
        return int(Decimal(str(value)) * SCALE)


def to_display(value: int, places: int = 6) -> str:
    """Render a scaled int for humans: 1500 * SCALE -> '1,500.000000'."""
    with localcontext() as ctx:
        ctx.prec = 90
        return f"{Decimal(value) / SCALE:,.{places}f}"
