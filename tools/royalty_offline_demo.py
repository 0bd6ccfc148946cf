#!/usr/bin/env python3
"""Offline walkthrough: create, set a 5% policy, offer an asset, buy it, inspect the split."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from royalty_enforcer.core.authorizer import TransferRequest
from royalty_enforcer.core.bundle import Bundle, CurrencyPayment
from royalty_enforcer.core.errors import RoyaltyError
from royalty_enforcer.integration.config import EngineConfig
from royalty_enforcer.integration.engine import RoyaltyEngine
from royalty_enforcer.integration.ledger import InMemoryLedger
from royalty_enforcer.state.accounts import NATIVE_ASSET


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description=__doc__)
    p.add_argument("--royalty-percent", type=int, default=5)
    p.add_argument("--price", type=int, default=1_000_000, help="purchase price in native micro-units")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    creator, admin, owner, buyer, royalty = "CREATOR", "ADMIN", "NFT_OWNER", "BUYER", "ROYALTY_RECIPIENT"
    ledger = InMemoryLedger()
    for acct, amount in ((creator, 10_000_000), (admin, 10_000_000), (owner, 10_000_000), (buyer, 10_000_000), (royalty, 1_000_000)):
        ledger.fund(acct, amount)

    config = EngineConfig.from_env()
    engine = RoyaltyEngine(ledger, config)
    engine.create(creator)
    print(f"[offline-demo] admin={engine.get_administrator()}")
    engine.set_administrator(creator, admin)
    print(f"[offline-demo] admin after rotation={engine.get_administrator()}")

    engine.set_policy(admin, args.royalty_percent * 100, royalty)
    recipient, basis = engine.get_policy()
    print(f"[offline-demo] policy: recipient={recipient} percent={basis / 100}")

    asset = ledger.create_asset(
        owner,
        total=1,
        clawback=engine.address,
        default_frozen=True,
        unit_name="RLT",
        name="Royalty NFT",
        url="ipfs://example#arc3",
    )
    print(f"[offline-demo] created asset {asset.asset_id} (clawback={asset.clawback})")

    engine.offer(owner, asset.asset_id, 1, buyer)
    counterparty, available = engine.get_offer(asset.asset_id, owner)
    print(f"[offline-demo] offer: counterparty={counterparty} available={available}")

    ledger.opt_in(buyer, asset.asset_id)
    before_owner = ledger.balance(owner, NATIVE_ASSET)
    before_royalty = ledger.balance(royalty, NATIVE_ASSET)

    payment = CurrencyPayment(sender=buyer, receiver=engine.address, amount=args.price)
    request = TransferRequest(
        asset_id=asset.asset_id,
        requested_amount=1,
        owner=owner,
        recipient=buyer,
        royalty_recipient_claim=recipient,
        expected_available_amount=available,
    )
    try:
        receipt = engine.transfer_with_currency(buyer, request, Bundle.of(payment, buyer))
    except RoyaltyError as exc:
        print(f"[offline-demo] FAIL (transfer): {exc.kind}: {exc.message}")
        return 1

    assert receipt.split is not None
    print(f"[offline-demo] split: owner_share={receipt.split.owner_share} royalty_share={receipt.split.royalty_share}")
    print(f"[offline-demo] owner delta={ledger.balance(owner, NATIVE_ASSET) - before_owner}")
    print(f"[offline-demo] royalty delta={ledger.balance(royalty, NATIVE_ASSET) - before_royalty}")
    print(f"[offline-demo] buyer holds {ledger.balance(buyer, asset.asset_id)} unit(s) of asset {asset.asset_id}")
    print(f"[offline-demo] offer after: {engine.get_offer(asset.asset_id, owner)}")
    print(f"[offline-demo] state_root={engine.state_root()}")
    print("[offline-demo] OK: royalty-enforced transfer executed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
