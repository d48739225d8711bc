"""
Token balance tracking keyed by (holder, token).

Implements BalanceTable[PubKey, TokenId] -> Amount, the storage behind the
in-memory token custody collaborator.
"""

from typing import Dict, Tuple


# Type aliases
PubKey = str  # account / vault address
TokenId = str  # token mint address
Amount = int  # Non-negative integer (arbitrary precision)


class BalanceTable:
    """
    Balance table mapping (holder, token) -> amount.

    Zero balances are dropped to keep the table sparse.
    """

    def __init__(self) -> None:
        self._balances: Dict[Tuple[PubKey, TokenId], Amount] = {}

    def get(self, holder: PubKey, token: TokenId) -> Amount:
        """Get balance for (holder, token). Returns 0 if not found."""
        return self._balances.get((holder, token), 0)

    def set(self, holder: PubKey, token: TokenId, amount: Amount) -> None:
        """
        Set balance for (holder, token).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((holder, token), None)
        else:
            self._balances[(holder, token)] = amount

    def add(self, holder: PubKey, token: TokenId, delta: int) -> None:
        """Add delta to a balance (delta may be negative)."""
        current = self.get(holder, token)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(holder, token, new_balance)

    def subtract(self, holder: PubKey, token: TokenId, delta: Amount) -> None:
        """Subtract a non-negative amount from a balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(holder, token, -delta)

    def total_supply(self, token: TokenId) -> Amount:
        return sum(amount for (_, tok), amount in self._balances.items() if tok == token)

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
