"""
External ledger boundary.

The engine never owns balances or assets. It reads asset descriptors and
balances through `Ledger` and hands it ordered `Transfer` groups to apply
atomically. `InMemoryLedger` is a deterministic implementation for tests, the
offline demo, and embedding the engine without a chain:

- non-native holdings require an opt-in (a zero-amount self transfer),
- only an asset's clawback account may issue clawback transfers,
- default-frozen assets move only by clawback,
- a group is applied to a scratch copy and swapped in only if every transfer
  succeeded.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol, Sequence

from ..core.bundle import Transfer
from ..core.errors import LedgerRejectedError
from ..state.accounts import MAX_UINT64, NATIVE_ASSET, ZERO_ADDRESS, AssetId, HoldingTable, Identity, is_zero
from ..state.assets import AssetDescriptor

logger = logging.getLogger(__name__)


class Ledger(Protocol):
    def asset_info(self, asset_id: AssetId) -> Optional[AssetDescriptor]: ...

    def balance(self, identity: Identity, asset_id: AssetId) -> int: ...

    def is_opted_in(self, identity: Identity, asset_id: AssetId) -> bool: ...

    def apply_atomic(self, transfers: Sequence[Transfer]) -> None: ...


class InMemoryLedger:
    def __init__(self) -> None:
        self._assets: Dict[AssetId, AssetDescriptor] = {}
        self._holdings = HoldingTable()
        self._next_asset_id = 1000

    # -- reads -----------------------------------------------------------------

    def asset_info(self, asset_id: AssetId) -> Optional[AssetDescriptor]:
        return self._assets.get(asset_id)

    def balance(self, identity: Identity, asset_id: AssetId) -> int:
        return self._holdings.get(identity, asset_id)

    def is_opted_in(self, identity: Identity, asset_id: AssetId) -> bool:
        return self._holdings.is_opted_in(identity, asset_id)

    # -- account setup (wallet collaborators) -----------------------------------

    def fund(self, identity: Identity, amount: int) -> None:
        """Credit native currency (faucet)."""
        self._holdings.add(identity, NATIVE_ASSET, amount)

    def opt_in(self, identity: Identity, asset_id: AssetId) -> None:
        self.apply_atomic([Transfer(sender=identity, receiver=identity, amount=0, asset_id=asset_id)])

    def create_asset(
        self,
        creator: Identity,
        *,
        total: int = 1,
        decimals: int = 0,
        clawback: Identity = ZERO_ADDRESS,
        freeze: Identity = ZERO_ADDRESS,
        manager: Identity = ZERO_ADDRESS,
        reserve: Identity = ZERO_ADDRESS,
        default_frozen: bool = False,
        unit_name: str = "",
        name: str = "",
        url: str = "",
    ) -> AssetDescriptor:
        """Create an asset; the creator is opted in and holds the full supply."""
        asset = AssetDescriptor(
            asset_id=self._next_asset_id,
            creator=creator,
            total=total,
            decimals=decimals,
            clawback=clawback,
            freeze=freeze,
            manager=manager,
            reserve=reserve,
            default_frozen=default_frozen,
            unit_name=unit_name,
            name=name,
            url=url,
        )
        self._next_asset_id += 1
        self._assets[asset.asset_id] = asset
        self._holdings.opt_in(creator, asset.asset_id)
        self._holdings.set(creator, asset.asset_id, total)
        return asset

    # -- atomic groups ---------------------------------------------------------

    def apply_atomic(self, transfers: Sequence[Transfer]) -> None:
        """
        Apply `transfers` in order, all or nothing.

        Raises:
            LedgerRejectedError: If any transfer is invalid; no transfer is applied
        """
        scratch = self._holdings.copy()
        for index, transfer in enumerate(transfers):
            try:
                self._apply_one(scratch, transfer)
            except ValueError as exc:
                logger.warning("ledger rolled back group at transfer %d: %s", index, exc)
                raise LedgerRejectedError(f"transfer {index} rejected: {exc}") from exc
        self._holdings = scratch

    def _apply_one(self, holdings: HoldingTable, t: Transfer) -> None:
        if not isinstance(t.amount, int) or isinstance(t.amount, bool) or not (0 <= t.amount <= MAX_UINT64):
            raise ValueError(f"invalid amount: {t.amount!r}")

        if t.asset_id == NATIVE_ASSET:
            if t.revocation_target is not None:
                raise ValueError("native currency cannot be clawed back")
            self._move(holdings, t.sender, t.receiver, NATIVE_ASSET, t.amount)
            if not is_zero(t.close_to):
                self._move(holdings, t.sender, t.close_to, NATIVE_ASSET, holdings.get(t.sender, NATIVE_ASSET))
            return

        asset = self._assets.get(t.asset_id)
        if asset is None:
            raise ValueError(f"unknown asset {t.asset_id}")

        if t.is_opt_in:
            holdings.opt_in(t.sender, t.asset_id)
            return

        if t.revocation_target is not None:
            if asset.clawback != t.sender:
                raise ValueError(f"{t.sender} is not the clawback account of asset {t.asset_id}")
        elif asset.default_frozen:
            raise ValueError(f"asset {t.asset_id} is frozen; only clawback transfers are allowed")

        self._move(holdings, t.source, t.receiver, t.asset_id, t.amount)

        if not is_zero(t.close_to):
            if t.revocation_target is not None:
                raise ValueError("clawback transfers cannot close out")
            remainder = holdings.close_out(t.sender, t.asset_id)
            if remainder:
                self._move_in(holdings, t.close_to, t.asset_id, remainder)

    @staticmethod
    def _move(holdings: HoldingTable, source: Identity, receiver: Identity, asset_id: AssetId, amount: int) -> None:
        if not holdings.is_opted_in(source, asset_id):
            raise ValueError(f"{source} is not opted in to asset {asset_id}")
        if not holdings.is_opted_in(receiver, asset_id):
            raise ValueError(f"{receiver} is not opted in to asset {asset_id}")
        holdings.subtract(source, asset_id, amount)
        holdings.add(receiver, asset_id, amount)

    @staticmethod
    def _move_in(holdings: HoldingTable, receiver: Identity, asset_id: AssetId, amount: int) -> None:
        if not holdings.is_opted_in(receiver, asset_id):
            raise ValueError(f"{receiver} is not opted in to asset {asset_id}")
        holdings.add(receiver, asset_id, amount)

    def holders_of(self, asset_id: AssetId) -> Dict[Identity, int]:
        return self._holdings.holders_of(asset_id)

    def total_supply(self, asset_id: AssetId) -> int:
        return sum(self.holders_of(asset_id).values())
