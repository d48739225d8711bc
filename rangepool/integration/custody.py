"""
Token custody collaborator.

The pool only ever asks custody to move tokens and to report balances. Input
owed to the pool is never trusted from a return value: ``Pool`` compares the
vault's ``balance_of`` before and after the payer's transfer.
"""

from __future__ import annotations

from typing import Dict, Protocol, Tuple, runtime_checkable

from ..errors import PoolValidationError
from ..state.balances import Amount, BalanceTable, PubKey, TokenId


@runtime_checkable
class TokenCustody(Protocol):
    def transfer(self, sender: PubKey, recipient: PubKey, token: TokenId, amount: Amount) -> None:
        ...

    def transfer_from(
        self, spender: PubKey, owner: PubKey, recipient: PubKey, token: TokenId, amount: Amount
    ) -> None:
        ...

    def balance_of(self, holder: PubKey, token: TokenId) -> Amount:
        ...


class InMemoryTokenLedger:
    """
    Fungible-token ledger backed by a ``BalanceTable``.

    Allowances are keyed by (owner, spender, token). ``transfer_from`` by an
    owner on their own behalf needs no allowance.
    """

    def __init__(self) -> None:
        self.balances = BalanceTable()
        self._allowances: Dict[Tuple[PubKey, PubKey, TokenId], Amount] = {}

    @staticmethod
    def _check_amount(amount: Amount) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise PoolValidationError(f"amount must be a non-negative int, got {amount}")

    def mint(self, holder: PubKey, token: TokenId, amount: Amount) -> None:
        self._check_amount(amount)
        self.balances.add(holder, token, amount)

    def approve(self, owner: PubKey, spender: PubKey, token: TokenId, amount: Amount) -> None:
        self._check_amount(amount)
        self._allowances[(owner, spender, token)] = amount

    def allowance(self, owner: PubKey, spender: PubKey, token: TokenId) -> Amount:
        return self._allowances.get((owner, spender, token), 0)

    def balance_of(self, holder: PubKey, token: TokenId) -> Amount:
        return self.balances.get(holder, token)

    def transfer(self, sender: PubKey, recipient: PubKey, token: TokenId, amount: Amount) -> None:
        """
        Raises:
            ValueError: If the sender's balance is insufficient
        """
        self._check_amount(amount)
        if amount == 0:
            return
        self.balances.subtract(sender, token, amount)
        self.balances.add(recipient, token, amount)

    def transfer_from(
        self, spender: PubKey, owner: PubKey, recipient: PubKey, token: TokenId, amount: Amount
    ) -> None:
        self._check_amount(amount)
        if spender != owner:
            allowed = self.allowance(owner, spender, token)
            if allowed < amount:
                raise ValueError(f"allowance {allowed} < {amount} for {spender} on {owner}/{token}")
            self.transfer(owner, recipient, token, amount)
            self._allowances[(owner, spender, token)] = allowed - amount
            return
        self.transfer(owner, recipient, token, amount)
