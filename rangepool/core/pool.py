"""
Pool session: the single mutation stream for one range pool.

Every mutating entry point follows the same shape:
  1. take the pool lock (non-blocking; a held lock raises ``PoolLockedError``),
  2. run the kernel against a deep copy of the state,
  3. collect owed input from the payer and verify it by ``balance_of`` delta
     on the vault, never by a custody return value,
  4. pay outbound tokens from the vault,
  5. swap the working copy in, emit events, release the lock.

Any failure before step 5 leaves the committed state untouched. A one-shot
operation that fails after step 3 hands back what the vault received, so the
vault never keeps input for an operation that did not commit.

Swaps and deposits can also be settled in two phases: ``begin_swap`` /
``begin_add_liquidity`` return a ``PendingSettlement`` and keep the lock
held while the payer moves tokens into the vault by whatever means it
likes; ``settle`` checks the delta and commits, ``abort`` walks away.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import PoolError, PoolLockedError, PoolStateError, PoolValidationError, SettlementError
from ..integration.clock import ActivationClock
from ..integration.custody import TokenCustody
from ..state.balances import PubKey, TokenId
from ..state.fee_config import CollectFeeMode, PoolFeesConfig
from ..state.pools import PoolState, compute_pool_id
from ..state.positions import Position
from ..state.vesting import VestingState
from . import events as ev
from .fees import TradeDirection
from .ledger import (
    ClaimFeeResult,
    ModifyLiquidityResult,
    add_liquidity,
    claim_partner_fee,
    claim_position_fee,
    claim_protocol_fee,
    claim_reward,
    permanent_lock,
    remove_all_liquidity,
    remove_liquidity,
)
from .price_curve import MAX_SQRT_PRICE, MIN_SQRT_PRICE, get_initial_liquidity_from_amounts
from .rewards import (
    fund_reward,
    initialize_reward,
    update_reward_duration,
    update_reward_funder,
    withdraw_ineligible_reward,
)
from .splitter import SplitParams, SplitResult, split_position
from .swap import SwapParams, SwapResult, apply_swap, quote_swap
from .vesting import VestingParams, lock_position, release_vested_liquidity

logger = logging.getLogger(__name__)

EventSink = Callable[[ev.PoolEvent], None]


@dataclass(frozen=True)
class PoolConfig:
    """Creation-time parameters of a pool."""

    token_a: TokenId
    token_b: TokenId
    sqrt_price: int
    sqrt_min_price: int
    sqrt_max_price: int
    pool_fees: PoolFeesConfig
    collect_fee_mode: CollectFeeMode = CollectFeeMode.BOTH_TOKEN
    partner: Optional[PubKey] = None

    def __post_init__(self) -> None:
        if not self.token_a or not self.token_b:
            raise PoolValidationError("pool tokens must be non-empty")
        if self.token_a == self.token_b:
            raise PoolValidationError(f"pool tokens must differ: {self.token_a}")
        for name in ("sqrt_price", "sqrt_min_price", "sqrt_max_price"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise PoolValidationError(f"{name} must be an int")
        if not (MIN_SQRT_PRICE <= self.sqrt_min_price < self.sqrt_max_price <= MAX_SQRT_PRICE):
            raise PoolValidationError(
                f"invalid price range: ({self.sqrt_min_price}, {self.sqrt_max_price})"
            )
        if not (self.sqrt_min_price <= self.sqrt_price <= self.sqrt_max_price):
            raise PoolValidationError(
                f"sqrt_price {self.sqrt_price} outside [{self.sqrt_min_price}, {self.sqrt_max_price}]"
            )
        if not isinstance(self.pool_fees, PoolFeesConfig):
            raise PoolValidationError("pool_fees must be a PoolFeesConfig")
        if not isinstance(self.collect_fee_mode, CollectFeeMode):
            raise PoolValidationError("collect_fee_mode must be a CollectFeeMode")


@dataclass(frozen=True)
class TokenTransfer:
    """``account`` pays for inbound transfers and receives outbound ones."""

    account: PubKey
    token: TokenId
    amount: int


@dataclass
class _Outcome:
    result: Any
    events: List[ev.PoolEvent]
    inbound: List[TokenTransfer] = field(default_factory=list)
    outbound: List[TokenTransfer] = field(default_factory=list)


@dataclass(frozen=True)
class PendingSettlement:
    """
    A priced operation waiting for its input tokens.

    Attributes:
        result: What the operation will return once settled
        inbound: Tokens the payer owes the vault
        outbound: Tokens the vault pays on settle
        balances_before: Vault balances of the inbound tokens when priced
    """

    pool_id: str
    nonce: int
    operation: str
    result: Any
    inbound: Tuple[TokenTransfer, ...]
    outbound: Tuple[TokenTransfer, ...]
    balances_before: Mapping[TokenId, int]
    next_state: PoolState = field(repr=False)
    events: Tuple[ev.PoolEvent, ...] = field(repr=False, default=())


def _sum_by_token(transfers: Tuple[TokenTransfer, ...]) -> Dict[TokenId, int]:
    totals: Dict[TokenId, int] = {}
    for transfer in transfers:
        if transfer.amount > 0:
            totals[transfer.token] = totals.get(transfer.token, 0) + transfer.amount
    return totals


class Pool:
    """
    One range pool bound to its clock, token custody and vault account.

    The vault is the custody account holding the pool's reserves, unclaimed
    fees and funded rewards.
    """

    def __init__(
        self,
        state: PoolState,
        clock: ActivationClock,
        custody: TokenCustody,
        vault: PubKey,
        event_sink: Optional[EventSink] = None,
    ) -> None:
        if not vault:
            raise PoolValidationError("vault must be non-empty")
        self._state = state
        self._clock = clock
        self._custody = custody
        self.vault = vault
        self._event_sink = event_sink
        self._lock = threading.Lock()
        self._nonce = 0
        self._pending_nonce: Optional[int] = None

    @classmethod
    def create(
        cls,
        config: PoolConfig,
        clock: ActivationClock,
        custody: TokenCustody,
        vault: PubKey,
        event_sink: Optional[EventSink] = None,
    ) -> "Pool":
        pool_id = compute_pool_id(
            config.token_a, config.token_b, config.sqrt_min_price, config.sqrt_max_price, config.collect_fee_mode
        )
        pool_fees = config.pool_fees
        if pool_fees.dynamic_fee.initialized:
            pool_fees = replace(
                pool_fees,
                dynamic_fee=replace(
                    pool_fees.dynamic_fee,
                    sqrt_price_reference=config.sqrt_price,
                    last_update_timestamp=clock.current_point(),
                ),
            )
        state = PoolState(
            pool_id=pool_id,
            token_a=config.token_a,
            token_b=config.token_b,
            sqrt_price=config.sqrt_price,
            sqrt_min_price=config.sqrt_min_price,
            sqrt_max_price=config.sqrt_max_price,
            pool_fees=pool_fees,
            collect_fee_mode=config.collect_fee_mode,
            partner=config.partner,
        )
        pool = cls(state, clock, custody, vault, event_sink)
        logger.info(
            "Pool %s created: %s/%s range=[%s, %s] mode=%s",
            pool.short_id,
            config.token_a,
            config.token_b,
            config.sqrt_min_price,
            config.sqrt_max_price,
            config.collect_fee_mode.name,
        )
        pool._emit(
            ev.PoolCreated(
                pool_id=pool_id,
                token_a=config.token_a,
                token_b=config.token_b,
                sqrt_price=config.sqrt_price,
                sqrt_min_price=config.sqrt_min_price,
                sqrt_max_price=config.sqrt_max_price,
            )
        )
        return pool

    # -- Read-only views ----------------------------------------------------

    @property
    def pool_id(self) -> str:
        return self._state.pool_id

    @property
    def short_id(self) -> str:
        return self._state.pool_id[:10]

    @property
    def state(self) -> PoolState:
        """A deep copy of the committed state."""
        return copy.deepcopy(self._state)

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    def position(self, owner: PubKey) -> Optional[Position]:
        position = self._state.positions.get(owner)
        return copy.deepcopy(position) if position is not None else None

    def vesting(self, owner: PubKey) -> Optional[VestingState]:
        vesting = self._state.vestings.get(owner)
        return copy.deepcopy(vesting) if vesting is not None else None

    def quote_swap(
        self,
        amount_a_in: int = 0,
        amount_b_in: int = 0,
        minimum_amount_out: int = 0,
        has_referral: bool = False,
    ) -> SwapResult:
        params = SwapParams(amount_a_in, amount_b_in, minimum_amount_out, has_referral)
        return quote_swap(self._state, params, self._clock.current_point(), self._activation_point())

    def liquidity_for_amounts(self, amount_a: int, amount_b: int) -> int:
        """Largest liquidity ``amount_a`` and ``amount_b`` can back at the current price."""
        s = self._state
        return get_initial_liquidity_from_amounts(s.sqrt_min_price, s.sqrt_max_price, s.sqrt_price, amount_a, amount_b)

    # -- Lock and settlement machinery --------------------------------------

    def _activation_point(self) -> int:
        return self._clock.activation_point(self._state.pool_id)

    def _acquire_lock(self) -> None:
        if not self._lock.acquire(blocking=False):
            raise PoolLockedError(f"pool {self.short_id} is locked")

    def _release_lock(self) -> None:
        self._lock.release()

    def _begin(self, operation: str, mutate: Callable[[PoolState, int], _Outcome]) -> PendingSettlement:
        self._acquire_lock()
        try:
            now = self._clock.current_point()
            working = copy.deepcopy(self._state)
            try:
                outcome = mutate(working, now)
            except PoolError as exc:
                logger.debug("Pool %s: %s rejected: %s", self.short_id, operation, exc)
                raise
            inbound = tuple(outcome.inbound)
            balances_before = {
                token: self._custody.balance_of(self.vault, token) for token in _sum_by_token(inbound)
            }
            self._nonce += 1
            self._pending_nonce = self._nonce
            return PendingSettlement(
                pool_id=working.pool_id,
                nonce=self._nonce,
                operation=operation,
                result=outcome.result,
                inbound=inbound,
                outbound=tuple(outcome.outbound),
                balances_before=balances_before,
                next_state=working,
                events=tuple(outcome.events),
            )
        except BaseException:
            self._release_lock()
            raise

    def _check_pending(self, pending: PendingSettlement) -> None:
        if pending.pool_id != self._state.pool_id or pending.nonce != self._pending_nonce:
            raise PoolStateError(f"stale settlement for {pending.operation} (nonce {pending.nonce})")

    def _collect(self, pending: PendingSettlement) -> List[TokenTransfer]:
        """
        Pull owed input from each payer into the vault.

        Returns what the vault actually received per pull, measured by
        ``balance_of``. If a pull fails, earlier pulls are refunded first.
        """
        received: List[TokenTransfer] = []
        for transfer in pending.inbound:
            if transfer.amount == 0:
                continue
            before = self._custody.balance_of(self.vault, transfer.token)
            try:
                self._custody.transfer_from(self.vault, transfer.account, self.vault, transfer.token, transfer.amount)
            except Exception as exc:
                self._refund(received)
                raise SettlementError(transfer.token, transfer.amount, 0) from exc
            delivered = self._custody.balance_of(self.vault, transfer.token) - before
            received.append(TokenTransfer(transfer.account, transfer.token, delivered))
        return received

    def _refund(self, received: Sequence[TokenTransfer]) -> None:
        """Return pulled input to its payers, leaving the vault as it was before the pull."""
        for transfer in reversed(received):
            if transfer.amount > 0:
                self._custody.transfer(self.vault, transfer.account, transfer.token, transfer.amount)
                logger.debug(
                    "Pool %s: refunded %s %s to %s", self.short_id, transfer.amount, transfer.token, transfer.account
                )

    def _verify_inbound(self, pending: PendingSettlement) -> None:
        for token, expected in _sum_by_token(pending.inbound).items():
            received = self._custody.balance_of(self.vault, token) - pending.balances_before[token]
            if received < expected:
                raise SettlementError(token, expected, received)

    def _pay_out(self, outbound: Tuple[TokenTransfer, ...]) -> None:
        for token, needed in _sum_by_token(outbound).items():
            available = self._custody.balance_of(self.vault, token)
            if available < needed:
                raise SettlementError(token, needed, available)
        for transfer in outbound:
            if transfer.amount > 0:
                self._custody.transfer(self.vault, transfer.account, transfer.token, transfer.amount)

    def _emit(self, event: ev.PoolEvent) -> None:
        logger.debug("Pool %s event %s", self.short_id, event)
        if self._event_sink is not None:
            self._event_sink(event)

    def settle(self, pending: PendingSettlement) -> Any:
        """
        Verify the payer's delivery and commit a pending operation.

        The lock is released whether or not settlement succeeds.

        Raises:
            PoolStateError: If ``pending`` is not this pool's open settlement
            SettlementError: If the vault did not receive what is owed
        """
        return self._settle(pending, ())

    def _settle(self, pending: PendingSettlement, refunds: Sequence[TokenTransfer]) -> Any:
        """Settle ``pending``; on failure, hand ``refunds`` back before the lock is released."""
        self._check_pending(pending)
        try:
            try:
                self._verify_inbound(pending)
                self._pay_out(pending.outbound)
            except BaseException as exc:
                logger.debug("Pool %s: %s settlement failed: %s", self.short_id, pending.operation, exc)
                self._refund(refunds)
                raise
            self._state = pending.next_state
            logger.info("Pool %s: %s committed", self.short_id, pending.operation)
        finally:
            self._pending_nonce = None
            self._release_lock()
        for event in pending.events:
            self._emit(event)
        return pending.result

    def abort(self, pending: PendingSettlement) -> None:
        """Drop a pending operation and release the lock. State is unchanged."""
        self._check_pending(pending)
        self._pending_nonce = None
        self._release_lock()
        logger.debug("Pool %s: %s aborted", self.short_id, pending.operation)

    def _execute(self, operation: str, mutate: Callable[[PoolState, int], _Outcome]) -> Any:
        pending = self._begin(operation, mutate)
        try:
            received = self._collect(pending)
        except BaseException:
            self.abort(pending)
            raise
        return self._settle(pending, received)

    def _reserve_sync(self, state: PoolState) -> ev.ReserveSync:
        return ev.ReserveSync(
            pool_id=state.pool_id,
            reserve_a=state.reserve_a,
            reserve_b=state.reserve_b,
            sqrt_price=state.sqrt_price,
            liquidity=state.liquidity,
        )

    # -- Swaps --------------------------------------------------------------

    def _swap_op(
        self,
        trader: PubKey,
        amount_a_in: int,
        amount_b_in: int,
        minimum_amount_out: int,
        referral: Optional[PubKey],
    ) -> Callable[[PoolState, int], _Outcome]:
        if not trader:
            raise PoolValidationError("trader must be non-empty")
        params = SwapParams(amount_a_in, amount_b_in, minimum_amount_out, has_referral=referral is not None)

        def mutate(state: PoolState, now: int) -> _Outcome:
            result = apply_swap(state, params, now, self._activation_point())
            a_to_b = result.direction is TradeDirection.A_TO_B
            token_in, token_out = (state.token_a, state.token_b) if a_to_b else (state.token_b, state.token_a)
            fee_token = state.token_a if result.fees_on_token_a else state.token_b
            outbound = [TokenTransfer(trader, token_out, result.output_amount)]
            if referral is not None and result.referral_fee > 0:
                outbound.append(TokenTransfer(referral, fee_token, result.referral_fee))
            events = [
                ev.SwapExecuted(
                    pool_id=state.pool_id,
                    trader=trader,
                    a_to_b=a_to_b,
                    amount_in=result.amount_in,
                    output_amount=result.output_amount,
                    lp_fee=result.lp_fee,
                    protocol_fee=result.protocol_fee,
                    partner_fee=result.partner_fee,
                    referral_fee=result.referral_fee,
                    fees_on_token_a=result.fees_on_token_a,
                    next_sqrt_price=result.next_sqrt_price,
                ),
                ev.FeesUpdated(
                    pool_id=state.pool_id,
                    fee_a_per_liquidity=state.fee_a_per_liquidity,
                    fee_b_per_liquidity=state.fee_b_per_liquidity,
                ),
                self._reserve_sync(state),
            ]
            return _Outcome(
                result=result,
                events=events,
                inbound=[TokenTransfer(trader, token_in, result.amount_in)],
                outbound=outbound,
            )

        return mutate

    def begin_swap(
        self,
        trader: PubKey,
        amount_a_in: int = 0,
        amount_b_in: int = 0,
        minimum_amount_out: int = 0,
        referral: Optional[PubKey] = None,
    ) -> PendingSettlement:
        """Price a swap and hold the lock until ``settle`` or ``abort``."""
        return self._begin("swap", self._swap_op(trader, amount_a_in, amount_b_in, minimum_amount_out, referral))

    def swap(
        self,
        trader: PubKey,
        amount_a_in: int = 0,
        amount_b_in: int = 0,
        minimum_amount_out: int = 0,
        referral: Optional[PubKey] = None,
    ) -> SwapResult:
        """Swap, pulling the input from ``trader`` with ``transfer_from``."""
        return self._execute("swap", self._swap_op(trader, amount_a_in, amount_b_in, minimum_amount_out, referral))

    # -- Liquidity ----------------------------------------------------------

    def _modify_events(self, state: PoolState, result: ModifyLiquidityResult) -> List[ev.PoolEvent]:
        events: List[ev.PoolEvent] = []
        if result.position_created:
            events.append(ev.PositionCreated(pool_id=state.pool_id, owner=result.owner))
        events.append(
            ev.LiquidityModified(
                pool_id=state.pool_id,
                owner=result.owner,
                liquidity_delta=result.liquidity_delta,
                amount_a=result.amount_a,
                amount_b=result.amount_b,
            )
        )
        events.append(self._reserve_sync(state))
        return events

    def _add_liquidity_op(
        self, owner: PubKey, liquidity_delta: int, max_amount_a: int, max_amount_b: int
    ) -> Callable[[PoolState, int], _Outcome]:
        def mutate(state: PoolState, now: int) -> _Outcome:
            result = add_liquidity(state, owner, liquidity_delta, max_amount_a, max_amount_b, now)
            return _Outcome(
                result=result,
                events=self._modify_events(state, result),
                inbound=[
                    TokenTransfer(owner, state.token_a, result.amount_a),
                    TokenTransfer(owner, state.token_b, result.amount_b),
                ],
            )

        return mutate

    def begin_add_liquidity(
        self, owner: PubKey, liquidity_delta: int, max_amount_a: int, max_amount_b: int
    ) -> PendingSettlement:
        return self._begin("add_liquidity", self._add_liquidity_op(owner, liquidity_delta, max_amount_a, max_amount_b))

    def add_liquidity(
        self, owner: PubKey, liquidity_delta: int, max_amount_a: int, max_amount_b: int
    ) -> ModifyLiquidityResult:
        return self._execute(
            "add_liquidity", self._add_liquidity_op(owner, liquidity_delta, max_amount_a, max_amount_b)
        )

    def _withdrawal(self, state: PoolState, result: ModifyLiquidityResult) -> _Outcome:
        return _Outcome(
            result=result,
            events=self._modify_events(state, result),
            outbound=[
                TokenTransfer(result.owner, state.token_a, result.amount_a),
                TokenTransfer(result.owner, state.token_b, result.amount_b),
            ],
        )

    def remove_liquidity(
        self, owner: PubKey, liquidity_delta: int, min_amount_a: int = 0, min_amount_b: int = 0
    ) -> ModifyLiquidityResult:
        def mutate(state: PoolState, now: int) -> _Outcome:
            result = remove_liquidity(state, owner, liquidity_delta, min_amount_a, min_amount_b, now)
            return self._withdrawal(state, result)

        return self._execute("remove_liquidity", mutate)

    def remove_all_liquidity(self, owner: PubKey, min_amount_a: int = 0, min_amount_b: int = 0) -> ModifyLiquidityResult:
        def mutate(state: PoolState, now: int) -> _Outcome:
            result = remove_all_liquidity(state, owner, min_amount_a, min_amount_b, now)
            return self._withdrawal(state, result)

        return self._execute("remove_all_liquidity", mutate)

    def permanent_lock(self, owner: PubKey, liquidity: int) -> int:
        def mutate(state: PoolState, now: int) -> _Outcome:
            locked = permanent_lock(state, owner, liquidity, now)
            event = ev.PositionLocked(pool_id=state.pool_id, owner=owner, liquidity=locked, permanent=True)
            return _Outcome(result=locked, events=[event])

        return self._execute("permanent_lock", mutate)

    def lock_position(self, owner: PubKey, params: VestingParams) -> VestingState:
        def mutate(state: PoolState, now: int) -> _Outcome:
            vesting = lock_position(state, owner, params, now, self._clock.max_vesting_duration())
            event = ev.PositionLocked(
                pool_id=state.pool_id,
                owner=owner,
                liquidity=state.positions.require(owner).vested_liquidity,
                permanent=False,
                cliff_point=vesting.cliff_point,
            )
            return _Outcome(result=copy.deepcopy(vesting), events=[event])

        return self._execute("lock_position", mutate)

    def release_vested(self, owner: PubKey) -> int:
        def mutate(state: PoolState, now: int) -> _Outcome:
            released = release_vested_liquidity(state, owner, now)
            event = ev.VestingReleased(
                pool_id=state.pool_id,
                owner=owner,
                liquidity=released,
                schedule_done=owner not in state.vestings,
            )
            return _Outcome(result=released, events=[event])

        return self._execute("release_vested", mutate)

    def split_position(self, source: PubKey, destination: PubKey, params: SplitParams) -> SplitResult:
        def mutate(state: PoolState, now: int) -> _Outcome:
            result = split_position(state, source, destination, params, now)
            events: List[ev.PoolEvent] = []
            if result.destination_created:
                events.append(ev.PositionCreated(pool_id=state.pool_id, owner=destination))
            events.append(
                ev.PositionSplit(
                    pool_id=state.pool_id,
                    source=source,
                    destination=destination,
                    unlocked_liquidity=result.unlocked_liquidity,
                    permanent_locked_liquidity=result.permanent_locked_liquidity,
                    fee_a=result.fee_a,
                    fee_b=result.fee_b,
                    rewards=result.rewards,
                )
            )
            return _Outcome(result=result, events=events)

        return self._execute("split_position", mutate)

    # -- Claims -------------------------------------------------------------

    def claim_position_fee(self, owner: PubKey) -> ClaimFeeResult:
        def mutate(state: PoolState, now: int) -> _Outcome:
            result = claim_position_fee(state, owner, now)
            events = [
                ev.PositionFeeClaimed(pool_id=state.pool_id, owner=owner, fee_a=result.fee_a, fee_b=result.fee_b),
                self._reserve_sync(state),
            ]
            outbound = [
                TokenTransfer(owner, state.token_a, result.fee_a),
                TokenTransfer(owner, state.token_b, result.fee_b),
            ]
            return _Outcome(result=result, events=events, outbound=outbound)

        return self._execute("claim_position_fee", mutate)

    def claim_reward(self, owner: PubKey, index: int) -> int:
        def mutate(state: PoolState, now: int) -> _Outcome:
            amount = claim_reward(state, owner, index, now)
            mint = state.reward_infos[index].mint
            event = ev.RewardClaimed(pool_id=state.pool_id, owner=owner, reward_index=index, mint=mint, amount=amount)
            return _Outcome(result=amount, events=[event], outbound=[TokenTransfer(owner, mint, amount)])

        return self._execute("claim_reward", mutate)

    def claim_protocol_fee(self, recipient: PubKey, max_amount_a: int, max_amount_b: int) -> Tuple[int, int]:
        """Pay accrued protocol fees to ``recipient``. Authorization is the caller's concern."""
        if not recipient:
            raise PoolValidationError("recipient must be non-empty")

        def mutate(state: PoolState, now: int) -> _Outcome:
            amount_a, amount_b = claim_protocol_fee(state, max_amount_a, max_amount_b)
            events = [
                ev.ProtocolFeeClaimed(pool_id=state.pool_id, recipient=recipient, amount_a=amount_a, amount_b=amount_b),
                self._reserve_sync(state),
            ]
            outbound = [
                TokenTransfer(recipient, state.token_a, amount_a),
                TokenTransfer(recipient, state.token_b, amount_b),
            ]
            return _Outcome(result=(amount_a, amount_b), events=events, outbound=outbound)

        return self._execute("claim_protocol_fee", mutate)

    def claim_partner_fee(self, partner: PubKey, max_amount_a: int, max_amount_b: int) -> Tuple[int, int]:
        def mutate(state: PoolState, now: int) -> _Outcome:
            amount_a, amount_b = claim_partner_fee(state, partner, max_amount_a, max_amount_b)
            events = [
                ev.PartnerFeeClaimed(pool_id=state.pool_id, partner=partner, amount_a=amount_a, amount_b=amount_b),
                self._reserve_sync(state),
            ]
            outbound = [
                TokenTransfer(partner, state.token_a, amount_a),
                TokenTransfer(partner, state.token_b, amount_b),
            ]
            return _Outcome(result=(amount_a, amount_b), events=events, outbound=outbound)

        return self._execute("claim_partner_fee", mutate)

    # -- Reward channels ----------------------------------------------------

    def initialize_reward(self, index: int, mint: TokenId, funder: PubKey, reward_duration: int) -> None:
        def mutate(state: PoolState, now: int) -> _Outcome:
            initialize_reward(state, index, mint, funder, reward_duration, now)
            event = ev.RewardInitialized(
                pool_id=state.pool_id,
                reward_index=index,
                mint=mint,
                funder=funder,
                reward_duration=reward_duration,
            )
            return _Outcome(result=None, events=[event])

        self._execute("initialize_reward", mutate)

    def fund_reward(self, index: int, funder: PubKey, amount: int, carry_forward: bool = False) -> int:
        """Pull ``amount`` of the reward mint from ``funder`` and restart the emission window."""

        def mutate(state: PoolState, now: int) -> _Outcome:
            total_amount = fund_reward(state, index, funder, amount, now, carry_forward)
            info = state.reward_infos[index]
            event = ev.RewardFunded(
                pool_id=state.pool_id,
                reward_index=index,
                funder=funder,
                amount=amount,
                total_amount=total_amount,
                reward_duration_end=info.reward_duration_end,
            )
            return _Outcome(result=total_amount, events=[event], inbound=[TokenTransfer(funder, info.mint, amount)])

        return self._execute("fund_reward", mutate)

    def update_reward_duration(self, index: int, new_duration: int) -> None:
        def mutate(state: PoolState, now: int) -> _Outcome:
            update_reward_duration(state, index, new_duration, now)
            return _Outcome(result=None, events=[])

        self._execute("update_reward_duration", mutate)

    def update_reward_funder(self, index: int, new_funder: PubKey) -> None:
        def mutate(state: PoolState, now: int) -> _Outcome:
            update_reward_funder(state, index, new_funder)
            return _Outcome(result=None, events=[])

        self._execute("update_reward_funder", mutate)

    def withdraw_ineligible_reward(self, index: int, funder: PubKey) -> int:
        def mutate(state: PoolState, now: int) -> _Outcome:
            amount = withdraw_ineligible_reward(state, index, funder, now)
            mint = state.reward_infos[index].mint
            event = ev.IneligibleRewardWithdrawn(pool_id=state.pool_id, reward_index=index, funder=funder, amount=amount)
            return _Outcome(result=amount, events=[event], outbound=[TokenTransfer(funder, mint, amount)])

        return self._execute("withdraw_ineligible_reward", mutate)
