"""
account_book.py - Account Balances

Balances only ever go down, and only at settlement. A debit batch is
validated in full before any account is touched, then applied in one pass:
either every winner is charged or nobody is.

Each batch carries the round generation it settles. Generations are settled in
increasing order, so the book keeps only the last applied one: any batch
at or below it returns ALREADY_APPLIED, which makes a retried settlement
safe.
"""

from __future__ import annotations
from dataclasses import replace
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Tuple

from .core import (
    Account, ExecuteResult, ZERO,
    AccountNotFound, SettlementError,
)


class AccountBook:
    """
    Registry of funded accounts.

    Example:
        book = AccountBook([Account("acc-1", "Alice", Decimal("1000"))])
        book.apply_debits(generation=1, debits={"acc-1": Decimal("150")})
        book.get_balance("acc-1")  # Decimal("850")
    """

    def __init__(self, accounts: Iterable[Account] = ()):
        self._accounts: Dict[str, Account] = {}
        # Generations only increase, so the highest applied one covers all earlier ones
        self._last_applied_generation = 0
        for account in accounts:
            self.register(account)

    def register(self, account: Account) -> None:
        """
        Add an account.

        Raises:
            ValueError: If the account id is already registered
        """
        if account.account_id in self._accounts:
            raise ValueError(f"Account {account.account_id} already registered")
        self._accounts[account.account_id] = account

    def get(self, account_id: str) -> Account:
        if account_id not in self._accounts:
            raise AccountNotFound(f"Account {account_id} not registered")
        return self._accounts[account_id]

    def get_balance(self, account_id: str) -> Decimal:
        return self.get(account_id).balance

    def __contains__(self, account_id: str) -> bool:
        return account_id in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)

    def account_ids(self) -> List[str]:
        return list(self._accounts)

    def snapshot(self) -> Tuple[Account, ...]:
        """Point-in-time copy of every account, in registration order."""
        return tuple(self._accounts.values())

    def total_balance(self) -> Decimal:
        """Sum of all balances, accumulated in sorted id order."""
        return sum(
            (self._accounts[a].balance for a in sorted(self._accounts)),
            ZERO,
        )

    @property
    def last_applied_generation(self) -> int:
        return self._last_applied_generation

    def is_applied(self, generation: int) -> bool:
        return generation <= self._last_applied_generation

    def apply_debits(self, generation: int, debits: Mapping[str, Decimal]) -> ExecuteResult:
        """
        Debit each account by its settlement total for one round.

        Args:
            generation: Round generation being settled
            debits: account_id -> amount to subtract (>= 0; zero is a no-op)

        Returns:
            ExecuteResult.APPLIED, or ALREADY_APPLIED for a generation at or below
            the last one applied

        Raises:
            SettlementError: If an account is unknown, an amount is
                             negative, or a balance would go negative.
                             No account is modified in that case.
        """
        if generation <= self._last_applied_generation:
            return ExecuteResult.ALREADY_APPLIED

        # Validate the whole batch first
        proposed: Dict[str, Decimal] = {}
        for account_id, amount in debits.items():
            if account_id not in self._accounts:
                raise SettlementError(f"Debit for unknown account {account_id}")
            if amount < ZERO:
                raise SettlementError(f"Debit for {account_id} must be >= 0, got {amount}")
            if amount == ZERO:
                continue
            new_balance = self._accounts[account_id].balance - amount
            if new_balance < ZERO:
                raise SettlementError(
                    f"{account_id}: debit {amount} exceeds balance "
                    f"{self._accounts[account_id].balance}"
                )
            proposed[account_id] = new_balance

        for account_id, new_balance in proposed.items():
            self._accounts[account_id] = replace(self._accounts[account_id], balance=new_balance)
        self._last_applied_generation = generation
        return ExecuteResult.APPLIED
