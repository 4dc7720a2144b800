from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from .amount import Amount, sum_amounts_or_zero
from .ledger import DepositKey, LedgerRecord, MoveCommand, PublicKey, Transaction

logger = logging.getLogger(__name__)


class CoinSelectionError(Exception):
    pass


class InsufficientBalanceError(CoinSelectionError):
    def __init__(self, *, requested: Amount, available: Amount) -> None:
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient balance: requested={requested} available={available}")


class EmptySpendError(CoinSelectionError):
    def __init__(self, requested: Amount) -> None:
        self.requested = requested
        super().__init__(f"Cannot craft a spend of {requested}: the amount must be positive")


class CoinSelector:
    """Build a cash move paying a recipient from the leading records of a wallet."""

    def craft_spend(
        self,
        amount: Amount,
        recipient: PublicKey,
        wallet: Iterable[LedgerRecord],
        *,
        change_owner: PublicKey | None = None,
    ) -> Transaction:
        """Spend ``amount`` to ``recipient`` using wallet records in their given order.

        Records are taken greedily until they cover the amount. Value from one deposit
        is merged into a single recipient output, and any overshoot goes back as change
        at the deposit of the last record taken, owned by ``change_owner`` (defaults to
        that record's owner). Only records in the amount's currency are considered.
        """
        if amount.quantity == 0:
            raise EmptySpendError(amount)

        # Zero records can never be spent, so they are not candidates either.
        candidates = [
            record
            for record in wallet
            if record.amount.currency == amount.currency and record.amount.quantity > 0
        ]
        selected, gathered = self._gather(candidates, amount)
        overshoot = gathered - amount.quantity
        last = selected[-1]

        contributions: dict[DepositKey, int] = defaultdict(int)
        for record in selected[:-1]:
            contributions[record.deposit] += record.amount.quantity
        contributions[last.deposit] += last.amount.quantity - overshoot

        outputs = [
            LedgerRecord(
                deposit=deposit,
                amount=Amount(quantity=quantity, currency=amount.currency),
                owner=recipient,
            )
            for deposit, quantity in contributions.items()
        ]
        if overshoot > 0:
            outputs.append(
                LedgerRecord(
                    deposit=last.deposit,
                    amount=Amount(quantity=overshoot, currency=amount.currency),
                    owner=change_owner if change_owner is not None else last.owner,
                )
            )

        signers = frozenset(record.owner for record in selected)
        transaction = Transaction(
            inputs=tuple(selected),
            outputs=tuple(outputs),
            commands=(MoveCommand(signers=signers),),
        )
        logger.info(
            "Crafted spend of %s to %s: %d inputs, %d outputs, change=%d",
            amount,
            recipient,
            len(transaction.inputs),
            len(transaction.outputs),
            overshoot,
        )
        return transaction

    def _gather(self, candidates: list[LedgerRecord], amount: Amount) -> tuple[list[LedgerRecord], int]:
        selected: list[LedgerRecord] = []
        gathered = 0
        for record in candidates:
            if gathered >= amount.quantity:
                break
            selected.append(record)
            gathered += record.amount.quantity

        if gathered < amount.quantity:
            available = sum_amounts_or_zero((record.amount for record in candidates), amount.currency)
            raise InsufficientBalanceError(requested=amount, available=available)
        return selected, gathered
