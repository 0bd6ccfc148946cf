"""
Account identities and holding balances.

Implements HoldingTable[Identity, AssetId] -> Amount plus the opt-in set that
gates which (identity, asset) holdings may receive units.
"""

from typing import Any, Dict, Set, Tuple

from .canonical import has_surrogates


# Type aliases
Identity = str  # opaque account reference (address or hex pubkey)
AssetId = int  # ledger asset index
Amount = int  # non-negative integer, bounded by MAX_UINT64

# Reserved "no identity" sentinel (used to reject rekeys / close redirects).
ZERO_ADDRESS: Identity = "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAY5HFKQ"

# Native currency pseudo-asset; every account holds it implicitly.
NATIVE_ASSET: AssetId = 0

MAX_UINT64 = 2**64 - 1


def is_zero(identity: Identity) -> bool:
    return identity == ZERO_ADDRESS


def require_identity(value: Any, *, name: str) -> Identity:
    """Non-empty string of Unicode scalar values (it must survive canonical encoding)."""
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty identity string")
    if has_surrogates(value):
        raise ValueError(f"{name} must not contain surrogate code points")
    return value


class HoldingTable:
    """
    Balance table mapping (identity, asset) -> amount, plus opt-in membership.

    An identity can only hold a non-native asset after opting in to it. Unlike a
    sparse balance map, an opted-in holding with zero units is still present.
    """

    def __init__(self):
        self._balances: Dict[Tuple[Identity, AssetId], Amount] = {}
        self._opted_in: Set[Tuple[Identity, AssetId]] = set()

    def is_opted_in(self, identity: Identity, asset: AssetId) -> bool:
        if asset == NATIVE_ASSET:
            return True
        return (identity, asset) in self._opted_in

    def opt_in(self, identity: Identity, asset: AssetId) -> None:
        if asset == NATIVE_ASSET:
            return
        self._opted_in.add((identity, asset))

    def close_out(self, identity: Identity, asset: AssetId) -> Amount:
        """
        Remove the holding and return the balance it carried.

        Raises:
            ValueError: If the identity is not opted in to `asset`
        """
        if asset == NATIVE_ASSET:
            raise ValueError("cannot close out the native asset")
        if (identity, asset) not in self._opted_in:
            raise ValueError(f"{identity} is not opted in to asset {asset}")
        self._opted_in.discard((identity, asset))
        return self._balances.pop((identity, asset), 0)

    def get(self, identity: Identity, asset: AssetId) -> Amount:
        """Get balance for (identity, asset). Returns 0 if not found."""
        return self._balances.get((identity, asset), 0)

    def set(self, identity: Identity, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (identity, asset).

        Raises:
            ValueError: If amount is out of range or the holding is not opted in
        """
        if amount < 0 or amount > MAX_UINT64:
            raise ValueError(f"Balance out of range: {amount}")
        if not self.is_opted_in(identity, asset):
            raise ValueError(f"{identity} is not opted in to asset {asset}")
        if amount == 0:
            self._balances.pop((identity, asset), None)
        else:
            self._balances[(identity, asset)] = amount

    def add(self, identity: Identity, asset: AssetId, delta: Amount) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If the resulting balance would be negative or overflow
        """
        current = self.get(identity, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(identity, asset, new_balance)

    def subtract(self, identity: Identity, asset: AssetId, delta: Amount) -> None:
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(identity, asset, -delta)

    def copy(self) -> "HoldingTable":
        out = HoldingTable()
        out._balances = dict(self._balances)
        out._opted_in = set(self._opted_in)
        return out

    def get_all_balances(self) -> Dict[Tuple[Identity, AssetId], Amount]:
        return dict(self._balances)

    def holders_of(self, asset: AssetId) -> Dict[Identity, Amount]:
        """All opted-in holders of `asset` with their balances (zero included)."""
        result = {}
        for ident, a in self._opted_in:
            if a == asset:
                result[ident] = self.get(ident, asset)
        return result

    def __repr__(self) -> str:
        return f"HoldingTable({len(self._balances)} balances, {len(self._opted_in)} opt-ins)"
