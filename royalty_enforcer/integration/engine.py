"""
Royalty engine facade.

This is the imperative shell around the functional core:
- reads asset descriptors and balances from the `Ledger` once per operation,
- runs the pure core function to obtain the next state and the transfers,
- hands the transfers to the ledger as one atomic group, and
- adopts the next state only if the ledger accepted the whole group.

A rejected operation therefore leaves both the engine state and the ledger
untouched. Operations are synchronous and must be called in the host's
serialization order; the engine does no locking of its own.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, TypeVar, Union

from ..core import admin as admin_gate
from ..core import offers as offer_registry
from ..core import policy as policy_store
from ..core.authorizer import (
    Event,
    TransferPlan,
    TransferRequest,
    plan_royalty_free_move,
    plan_transfer_with_asset,
    plan_transfer_with_currency,
)
from ..core.bundle import Bundle, Transfer
from ..core.errors import InvalidNonceError, MalformedOperationError, RoyaltyError
from ..core.replay import require_next_nonce
from ..core.split import PaymentSplit
from ..state.accounts import AssetId, Identity
from ..state.engine_state import EngineState, Offer, initial_state, state_to_dict
from ..state.state_root import compute_state_root
from .config import EngineConfig
from .ledger import Ledger
from .operations import Operation, map_identities, parse_operation, parse_operation_json
from .signatures import canonical_identity, verify_envelope

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class Receipt:
    """What a committed transfer operation did."""

    event: Event
    transfers: Tuple[Transfer, ...]
    split: Optional[PaymentSplit] = None
    offer_after: Optional[Offer] = None


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    value: Any = None
    receipt: Optional[Receipt] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None


def _logged(fn: F) -> F:
    """Log rejections with their kind; the exception still propagates."""

    @functools.wraps(fn)
    def wrapper(self: "RoyaltyEngine", *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(self, *args, **kwargs)
        except RoyaltyError as exc:
            logger.warning("%s rejected: %s: %s", fn.__name__, exc.kind, exc.message)
            raise

    return wrapper  # type: ignore[return-value]


class RoyaltyEngine:
    def __init__(
        self,
        ledger: Ledger,
        config: EngineConfig = EngineConfig(),
        state: Optional[EngineState] = None,
    ) -> None:
        self._ledger = ledger
        self._config = config
        self._state = state if state is not None else initial_state()

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def address(self) -> Identity:
        return self._config.app_address

    # -- administration ----------------------------------------------------------

    @_logged
    def create(self, caller: Identity) -> None:
        self._state = admin_gate.create(self._state, caller)
        logger.info("engine created by %s", caller)

    @_logged
    def set_administrator(self, caller: Identity, new_admin: Identity) -> None:
        self._state = admin_gate.set_administrator(self._state, caller, new_admin)
        logger.info("administrator changed to %s", new_admin)

    @_logged
    def get_administrator(self) -> Identity:
        return admin_gate.get_administrator(self._state)

    @_logged
    def set_policy(self, caller: Identity, rate: int, recipient: Identity) -> None:
        self._state = policy_store.set_policy(self._state, caller, rate, recipient)
        logger.info("royalty policy set: basis=%d recipient=%s", rate, recipient)

    @_logged
    def get_policy(self) -> Tuple[Identity, int]:
        return policy_store.get_policy(self._state)

    @_logged
    def set_payment_asset_allowed(self, caller: Identity, payment_asset: AssetId, allowed: bool) -> None:
        transfers = admin_gate.plan_payment_asset_toggle(
            self._state,
            caller,
            asset=self._ledger.asset_info(payment_asset),
            opted_in=self._ledger.is_opted_in(self.address, payment_asset),
            allowed=allowed,
            system=self.address,
        )
        if transfers:
            self._ledger.apply_atomic(transfers)
        logger.info("payment asset %d allowed=%s", payment_asset, allowed)

    # -- offers --------------------------------------------------------------------

    @_logged
    def offer(
        self,
        caller: Identity,
        asset_id: AssetId,
        amount: int,
        authorized_counterparty: Identity,
        *,
        previous_counterparty: Optional[Identity] = None,
        previous_amount: Optional[int] = None,
    ) -> None:
        self._state = offer_registry.offer(
            self._state,
            caller,
            asset=self._ledger.asset_info(asset_id),
            caller_balance=self._ledger.balance(caller, asset_id),
            amount=amount,
            authorized_counterparty=authorized_counterparty,
            system=self.address,
            previous_counterparty=previous_counterparty,
            previous_amount=previous_amount,
        )
        logger.info("offer set: owner=%s asset=%d amount=%d counterparty=%s",
                    caller, asset_id, amount, authorized_counterparty)

    @_logged
    def get_offer(self, asset_id: AssetId, owner: Identity) -> Tuple[Identity, int]:
        return offer_registry.get_offer(self._state, asset_id, owner)

    # -- transfers -----------------------------------------------------------------

    def _commit(self, plan: TransferPlan) -> Receipt:
        """Apply the plan's transfers atomically, then adopt its state."""
        if plan.transfers:
            self._ledger.apply_atomic(plan.transfers)
        self._state = plan.state
        return Receipt(
            event=plan.event,
            transfers=plan.transfers,
            split=plan.split,
            offer_after=plan.offer_after,
        )

    @_logged
    def transfer_with_currency(self, caller: Identity, request: TransferRequest, bundle: Bundle) -> Receipt:
        plan = plan_transfer_with_currency(self._state, caller, request, bundle, system=self.address)
        receipt = self._commit(plan)
        self._log_transfer(request, receipt)
        return receipt

    @_logged
    def transfer_with_asset(self, caller: Identity, request: TransferRequest, bundle: Bundle) -> Receipt:
        plan = plan_transfer_with_asset(self._state, caller, request, bundle, system=self.address)
        receipt = self._commit(plan)
        self._log_transfer(request, receipt)
        return receipt

    @_logged
    def royalty_free_move(
        self,
        caller: Identity,
        asset_id: AssetId,
        amount: int,
        owner: Identity,
        recipient: Identity,
        expected_available_amount: int,
    ) -> Receipt:
        plan = plan_royalty_free_move(
            self._state,
            caller,
            asset_id=asset_id,
            amount=amount,
            owner=owner,
            expected_available_amount=expected_available_amount,
        )
        logger.info("royalty-free move authorized: owner=%s asset=%d amount=%d recipient=%s",
                    owner, asset_id, amount, recipient)
        return self._commit(plan)

    @staticmethod
    def _log_transfer(request: TransferRequest, receipt: Receipt) -> None:
        split = receipt.split
        logger.info(
            "%s: asset=%d amount=%d %s -> %s owner_share=%d royalty_share=%d remaining=%d",
            receipt.event.value,
            request.asset_id,
            request.requested_amount,
            request.owner,
            request.recipient,
            split.owner_share if split else 0,
            split.royalty_share if split else 0,
            receipt.offer_after.available_amount if receipt.offer_after else 0,
        )

    # -- envelopes -------------------------------------------------------------------

    def apply_operation(self, envelope: Mapping[str, Any]) -> OperationResult:
        """
        Verify, parse and dispatch one operation envelope.

        Never raises for engine rejections; they come back as
        `OperationResult(ok=False, error_kind=...)`. A carried nonce is
        recorded only when the operation succeeds.
        """
        try:
            op = parse_operation(envelope)
            if self._config.require_signatures:
                verify_envelope(envelope, chain_id=self._config.chain_id)
                op = map_identities(op, canonical_identity)
                if op.nonce is None:
                    raise InvalidNonceError("signed operations must carry a nonce")
            if op.nonce is not None:
                require_next_nonce(self._state, op.sender, op.nonce)
            value = self._dispatch(op)
            if op.nonce is not None:
                self._state = require_next_nonce(self._state, op.sender, op.nonce)
        except RoyaltyError as exc:
            return OperationResult(ok=False, error=exc.message, error_kind=exc.kind)
        except (TypeError, ValueError) as exc:
            return OperationResult(ok=False, error=str(exc), error_kind="InvalidArgument")
        if isinstance(value, Receipt):
            return OperationResult(ok=True, receipt=value)
        return OperationResult(ok=True, value=value)

    def apply_operation_json(self, raw: Union[str, bytes]) -> OperationResult:
        try:
            envelope = parse_operation_json(raw, max_bytes=self._config.max_operation_bytes)
        except RoyaltyError as exc:
            return OperationResult(ok=False, error=exc.message, error_kind=exc.kind)
        return self.apply_operation(envelope)

    def _dispatch(self, op: Operation) -> Any:
        a = op.args
        if op.method == "create":
            return self.create(op.sender)
        if op.method == "set_administrator":
            return self.set_administrator(op.sender, a["new_admin"])
        if op.method == "set_policy":
            return self.set_policy(op.sender, a["royalty_basis"], a["royalty_recipient"])
        if op.method == "set_payment_asset_allowed":
            return self.set_payment_asset_allowed(op.sender, a["payment_asset"], a["allowed"])
        if op.method == "offer":
            return self.offer(
                op.sender,
                a["asset_id"],
                a["amount"],
                a["authorized_counterparty"],
                previous_counterparty=a["previous_counterparty"],
                previous_amount=a["previous_amount"],
            )
        if op.method == "get_offer":
            return self.get_offer(a["asset_id"], a["owner"])
        if op.method == "get_policy":
            return self.get_policy()
        if op.method == "get_administrator":
            return self.get_administrator()
        if op.method in ("transfer_with_currency", "transfer_with_asset"):
            if op.bundle is None:
                raise MalformedOperationError(f"{op.method} requires legs")
            request = TransferRequest(
                asset_id=a["asset_id"],
                requested_amount=a["requested_amount"],
                owner=a["owner"],
                recipient=a["recipient"],
                royalty_recipient_claim=a["royalty_recipient_claim"],
                expected_available_amount=a["expected_available_amount"],
                payment_asset=a.get("payment_asset"),
            )
            if op.method == "transfer_with_currency":
                return self.transfer_with_currency(op.sender, request, op.bundle)
            return self.transfer_with_asset(op.sender, request, op.bundle)
        if op.method == "royalty_free_move":
            return self.royalty_free_move(
                op.sender,
                a["asset_id"],
                a["amount"],
                a["owner"],
                a["recipient"],
                a["expected_available_amount"],
            )
        raise MalformedOperationError(f"unknown method {op.method!r}")

    # -- snapshots ---------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        return state_to_dict(self._state)

    def state_root(self) -> str:
        return compute_state_root(self._state)
