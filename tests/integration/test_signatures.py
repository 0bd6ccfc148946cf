from __future__ import annotations

import pytest
from py_ecc.bls import G2Basic

from royalty_enforcer.core.errors import InvalidSignatureError
from royalty_enforcer.integration.config import EngineConfig
from royalty_enforcer.integration.engine import RoyaltyEngine
from royalty_enforcer.integration.ledger import InMemoryLedger
from royalty_enforcer.integration.signatures import (
    canonical_identity,
    pubkey_hex,
    sign_envelope,
    signing_message,
    verify_envelope,
)

CHAIN_ID = "royalty-test"


@pytest.fixture(scope="module")
def keypair():
    # Deterministic keypair from a fixed seed.
    sk = G2Basic.KeyGen(b"\x07" * 32)
    return sk, pubkey_hex(sk)


def _create(pk: str) -> dict:
    return {"method": "create", "sender": pk, "args": {}}


def test_sign_and_verify_roundtrip(keypair) -> None:
    sk, pk = keypair
    signed = sign_envelope(sk, _create(pk), chain_id=CHAIN_ID)
    assert signed["signature"].startswith("0x")
    assert len(signed["signature"]) == 2 + 2 * 96
    verify_envelope(signed, chain_id=CHAIN_ID)


def test_signing_message_ignores_signature_field(keypair) -> None:
    _, pk = keypair
    env = _create(pk)
    assert signing_message(env, chain_id=CHAIN_ID) == signing_message({**env, "signature": "0x00"}, chain_id=CHAIN_ID)
    assert signing_message(env, chain_id=CHAIN_ID) != signing_message(env, chain_id="other-chain")


def test_verify_rejects_tampering(keypair) -> None:
    sk, pk = keypair
    signed = sign_envelope(sk, {"method": "set_administrator", "sender": pk, "args": {"new_admin": "A"}}, chain_id=CHAIN_ID)
    tampered = {**signed, "args": {"new_admin": "MALLORY"}}
    with pytest.raises(InvalidSignatureError, match="does not verify"):
        verify_envelope(tampered, chain_id=CHAIN_ID)
    with pytest.raises(InvalidSignatureError):
        verify_envelope(signed, chain_id="other-chain")


@pytest.mark.parametrize(
    "signature,match",
    [
        (None, "missing"),
        ("0x1234", "96 bytes"),
        ("0x" + "zz" * 96, "valid hex"),
    ],
)
def test_verify_rejects_malformed(keypair, signature, match) -> None:
    _, pk = keypair
    env = _create(pk)
    if signature is not None:
        env["signature"] = signature
    with pytest.raises(InvalidSignatureError, match=match):
        verify_envelope(env, chain_id=CHAIN_ID)


def test_verify_rejects_non_pubkey_sender(keypair) -> None:
    sk, _ = keypair
    signed = sign_envelope(sk, _create("ADMIN"), chain_id=CHAIN_ID)
    with pytest.raises(InvalidSignatureError, match="sender"):
        verify_envelope(signed, chain_id=CHAIN_ID)


def _engine(ledger=None) -> RoyaltyEngine:
    return RoyaltyEngine(ledger if ledger is not None else InMemoryLedger(), EngineConfig(chain_id=CHAIN_ID, require_signatures=True))


def _signed(sk: int, pk: str, method: str, nonce: int, legs=None, **args) -> dict:
    env = {"method": method, "sender": pk, "args": args, "nonce": nonce}
    if legs is not None:
        env["legs"] = legs
    return sign_envelope(sk, env, chain_id=CHAIN_ID)


def test_engine_requires_signatures_when_configured(keypair) -> None:
    sk, pk = keypair
    engine = _engine()

    unsigned = engine.apply_operation({**_create(pk), "nonce": 1})
    assert not unsigned.ok
    assert unsigned.error_kind == "InvalidSignature"

    without_nonce = engine.apply_operation(sign_envelope(sk, _create(pk), chain_id=CHAIN_ID))
    assert without_nonce.error_kind == "InvalidNonce"

    signed = engine.apply_operation(_signed(sk, pk, "create", 1))
    assert signed.ok
    assert engine.get_administrator() == pk


class TestReplayProtection:
    @pytest.fixture
    def parties(self):
        keys = {}
        for name, seed in (("admin", 1), ("owner", 2), ("buyer", 3)):
            sk = G2Basic.KeyGen(bytes([seed]) * 32)
            keys[name] = (sk, pubkey_hex(sk))
        return keys

    def test_replayed_purchase_is_rejected(self, parties) -> None:
        admin_sk, admin_pk = parties["admin"]
        owner_sk, owner_pk = parties["owner"]
        buyer_sk, buyer_pk = parties["buyer"]
        ledger = InMemoryLedger()
        engine = _engine(ledger)
        ledger.fund(buyer_pk, 5_000_000)

        assert engine.apply_operation(_signed(admin_sk, admin_pk, "create", 1)).ok
        assert engine.apply_operation(
            _signed(admin_sk, admin_pk, "set_policy", 2, royalty_basis=500, royalty_recipient=admin_pk)
        ).ok
        asset = ledger.create_asset(owner_pk, total=2, clawback=engine.address, default_frozen=True)
        ledger.opt_in(buyer_pk, asset.asset_id)

        offer = _signed(owner_sk, owner_pk, "offer", 1, asset_id=asset.asset_id, amount=1, authorized_counterparty=buyer_pk)
        assert engine.apply_operation(offer).ok

        purchase = _signed(
            buyer_sk,
            buyer_pk,
            "transfer_with_currency",
            1,
            legs=[
                {"type": "pay", "sender": buyer_pk, "receiver": engine.address, "amount": 1_000_000},
                {"type": "release", "sender": buyer_pk},
            ],
            asset_id=asset.asset_id,
            requested_amount=1,
            owner=owner_pk,
            recipient=buyer_pk,
            royalty_recipient_claim=admin_pk,
            expected_available_amount=1,
        )
        assert engine.apply_operation(purchase).ok

        # the owner re-arms the offer, which would make the old purchase valid again
        replayed_offer = engine.apply_operation(offer)
        assert replayed_offer.error_kind == "InvalidNonce"
        assert engine.apply_operation(
            _signed(owner_sk, owner_pk, "offer", 2, asset_id=asset.asset_id, amount=1, authorized_counterparty=buyer_pk)
        ).ok

        root = engine.state_root()
        replayed = engine.apply_operation(purchase)
        assert not replayed.ok
        assert replayed.error_kind == "InvalidNonce"
        assert ledger.balance(buyer_pk, 0) == 4_000_000
        assert ledger.balance(buyer_pk, asset.asset_id) == 1
        assert engine.state_root() == root

    def test_nonce_must_be_sequential(self, parties) -> None:
        sk, pk = parties["admin"]
        engine = _engine()
        assert engine.apply_operation(_signed(sk, pk, "create", 2)).error_kind == "InvalidNonce"
        assert engine.apply_operation(_signed(sk, pk, "create", 1)).ok
        assert engine.apply_operation(_signed(sk, pk, "get_administrator", 1)).error_kind == "InvalidNonce"
        assert engine.apply_operation(_signed(sk, pk, "get_administrator", 2)).ok
        assert engine.state.last_nonce(pk) == 2

    def test_rejected_operation_does_not_consume_nonce(self, parties) -> None:
        sk, pk = parties["admin"]
        engine = _engine()
        assert engine.apply_operation(_signed(sk, pk, "get_administrator", 1)).error_kind == "NotCreated"
        assert engine.state.last_nonce(pk) == 0
        assert engine.apply_operation(_signed(sk, pk, "create", 1)).ok

    def test_nonces_are_part_of_the_snapshot(self, parties) -> None:
        sk, pk = parties["admin"]
        engine = _engine()
        before = engine.state_root()
        engine.apply_operation(_signed(sk, pk, "create", 1))
        assert engine.snapshot()["nonces"] == [{"sender": pk, "last_nonce": 1}]
        assert engine.state_root() != before


def test_pubkey_identities_are_case_insensitive(keypair) -> None:
    sk, pk = keypair
    engine = _engine()
    upper = "0x" + pk[2:].upper()
    assert canonical_identity(upper) == pk
    assert canonical_identity("ADMIN") == "ADMIN"

    result = engine.apply_operation(sign_envelope(sk, {**_create(upper), "nonce": 1}, chain_id=CHAIN_ID))
    assert result.ok
    assert engine.get_administrator() == pk
    assert engine.apply_operation(_signed(sk, pk, "get_administrator", 2)).value == pk
