"""
Royalty payment splitter (deterministic, integer-only).

`royalty_share = floor(gross * rate / 10_000)`; the owner receives the rest, so
the rounding remainder always favors the owner and nothing is stranded.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..state.accounts import MAX_UINT64
from ..state.engine_state import BASIS_POINT_DENOM
from .errors import AmountOverflowError, InvalidRateError


@dataclass(frozen=True)
class PaymentSplit:
    owner_share: int
    royalty_share: int

    def __post_init__(self) -> None:
        for name, v in (("owner_share", self.owner_share), ("royalty_share", self.royalty_share)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")

    @property
    def gross(self) -> int:
        return self.owner_share + self.royalty_share


def royalty_amount(gross_amount: int, rate_basis: int) -> int:
    """
    floor(gross_amount * rate_basis / 10_000) with uint64 overflow checks.

    Raises:
        AmountOverflowError: If `gross_amount` or the intermediate product exceeds uint64
        InvalidRateError: If `rate_basis` is outside [0, 10_000]
    """
    if not isinstance(gross_amount, int) or isinstance(gross_amount, bool):
        raise TypeError("gross_amount must be an int")
    if not isinstance(rate_basis, int) or isinstance(rate_basis, bool):
        raise TypeError("rate_basis must be an int")
    if gross_amount < 0 or gross_amount > MAX_UINT64:
        raise AmountOverflowError(f"gross amount out of uint64 range: {gross_amount}")
    if not (0 <= rate_basis <= BASIS_POINT_DENOM):
        raise InvalidRateError(f"rate must be in [0, {BASIS_POINT_DENOM}]: {rate_basis}")

    product = gross_amount * rate_basis
    if product > MAX_UINT64:
        raise AmountOverflowError(f"gross * rate overflows uint64: {gross_amount} * {rate_basis}")
    return product // BASIS_POINT_DENOM


def compute_split(gross_amount: int, rate_basis: int) -> PaymentSplit:
    royalty = royalty_amount(gross_amount, rate_basis)
    return PaymentSplit(owner_share=gross_amount - royalty, royalty_share=royalty)
