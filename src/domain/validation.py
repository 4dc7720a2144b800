from __future__ import annotations

import logging
from collections import defaultdict
from enum import StrEnum
from typing import Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from .amount import Amount, Currency
from .ledger import DepositKey, ExitCommand, LedgerRecord, MoveCommand, Transaction, select_commands

logger = logging.getLogger(__name__)


class ViolationKind(StrEnum):
    NO_INPUTS = "NO_INPUTS"
    ZERO_AMOUNT_INPUT = "ZERO_AMOUNT_INPUT"
    CURRENCY_MISMATCH = "CURRENCY_MISMATCH"
    UNACCOUNTED_OUTPUT_GROUP = "UNACCOUNTED_OUTPUT_GROUP"
    UNBALANCED_GROUP = "UNBALANCED_GROUP"
    AMBIGUOUS_EXIT = "AMBIGUOUS_EXIT"
    SIGNER_MISMATCH = "SIGNER_MISMATCH"
    MISSING_EXIT_SIGNER = "MISSING_EXIT_SIGNER"


class Violation(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ViolationKind
    message: str
    group_key: DepositKey | None = None


class TransactionViolationError(Exception):
    def __init__(self, violation: Violation) -> None:
        super().__init__(f"{violation.kind}: {violation.message}")
        self.violation = violation

    @property
    def kind(self) -> ViolationKind:
        return self.violation.kind


class ValidationEngine:
    """Decide whether a draft transaction is a legal move or exit of cash.

    Rules are checked in a fixed order and the first one that fails is reported:

    1. there is at least one input, and no input has a zero amount;
    2. inputs, outputs and exit commands all use a single currency;
    3. every output belongs to a deposit that also has inputs;
    4. for every deposit, inputs minus signed exits equal outputs;
    5. the Move signers are exactly the owners of the inputs;
    6. every exit is signed by the issuer it redeems from.

    ``allow_issuer_only_exit`` controls exits that name an issuer but no deposit
    reference. When allowed they apply to the issuer's single deposit among the inputs.
    """

    def __init__(self, *, allow_issuer_only_exit: bool = True) -> None:
        self._allow_issuer_only_exit = allow_issuer_only_exit

    def verify(self, transaction: Transaction) -> None:
        violation = self.check(transaction)
        if violation is not None:
            raise TransactionViolationError(violation)

    def check(self, transaction: Transaction) -> Violation | None:
        violation = self._first_violation(transaction)
        if violation is not None:
            logger.debug("Transaction rejected: %s %s", violation.kind, violation.message)
        return violation

    def _first_violation(self, transaction: Transaction) -> Violation | None:
        if not transaction.inputs:
            return Violation(kind=ViolationKind.NO_INPUTS, message="Transaction has no inputs")

        for record in transaction.inputs:
            if record.amount.quantity == 0:
                return Violation(
                    kind=ViolationKind.ZERO_AMOUNT_INPUT,
                    message=f"Zero sized input at deposit {record.deposit} owned by {record.owner}",
                    group_key=record.deposit,
                )

        currency_violation = self._check_currency(transaction)
        if currency_violation is not None:
            return currency_violation
        currency = transaction.inputs[0].amount.currency

        input_groups = _group_by_deposit(transaction.inputs)
        output_groups = _group_by_deposit(transaction.outputs)

        for key in output_groups:
            if key not in input_groups:
                return Violation(
                    kind=ViolationKind.UNACCOUNTED_OUTPUT_GROUP,
                    message=f"Outputs at deposit {key} have no matching inputs",
                    group_key=key,
                )

        exits = self._resolve_exits(transaction, input_groups)
        if isinstance(exits, Violation):
            return exits

        balance_violation = self._check_balances(input_groups, output_groups, exits, currency)
        if balance_violation is not None:
            return balance_violation

        move_signers: set[str] = set()
        for command in select_commands(transaction.commands, MoveCommand):
            move_signers |= command.signers
        owners = {record.owner for record in transaction.inputs}
        if move_signers != owners:
            return Violation(
                kind=ViolationKind.SIGNER_MISMATCH,
                message=f"Move signers {sorted(move_signers)} differ from input owners {sorted(owners)}",
            )

        for exit_command in select_commands(transaction.commands, ExitCommand):
            if exit_command.issuer.owning_key not in exit_command.signers:
                return Violation(
                    kind=ViolationKind.MISSING_EXIT_SIGNER,
                    message=f"Exit of {exit_command.amount} at issuer {exit_command.issuer} is not signed by the issuer",
                    group_key=exit_command.deposit,
                )

        return None

    def _check_currency(self, transaction: Transaction) -> Violation | None:
        input_currencies = {record.amount.currency for record in transaction.inputs}
        if len(input_currencies) > 1:
            return Violation(
                kind=ViolationKind.CURRENCY_MISMATCH,
                message=f"Inputs mix currencies: {', '.join(sorted(input_currencies))}",
            )
        (currency,) = input_currencies

        for record in transaction.outputs:
            if record.amount.currency != currency:
                return Violation(
                    kind=ViolationKind.CURRENCY_MISMATCH,
                    message=f"Output in {record.amount.currency} does not use the input currency {currency}",
                    group_key=record.deposit,
                )

        for exit_command in select_commands(transaction.commands, ExitCommand):
            if exit_command.amount.currency != currency:
                return Violation(
                    kind=ViolationKind.CURRENCY_MISMATCH,
                    message=f"Exit in {exit_command.amount.currency} does not use the input currency {currency}",
                    group_key=exit_command.deposit,
                )
        return None

    def _resolve_exits(
        self,
        transaction: Transaction,
        input_groups: dict[DepositKey, list[LedgerRecord]],
    ) -> dict[DepositKey, int] | Violation:
        """Total exit quantity per deposit, counting only exits signed by their issuer."""
        exits: dict[DepositKey, int] = defaultdict(int)
        for exit_command in select_commands(transaction.commands, ExitCommand):
            if exit_command.issuer.owning_key not in exit_command.signers:
                continue

            deposit = exit_command.deposit
            if deposit is None:
                candidates = [key for key in input_groups if key.issuer == exit_command.issuer]
                if not self._allow_issuer_only_exit or len(candidates) > 1:
                    return Violation(
                        kind=ViolationKind.AMBIGUOUS_EXIT,
                        message=(
                            f"Exit of {exit_command.amount} at issuer {exit_command.issuer} must name "
                            f"one of {len(candidates)} deposits"
                        ),
                    )
                if not candidates:
                    return Violation(
                        kind=ViolationKind.UNBALANCED_GROUP,
                        message=f"Exit of {exit_command.amount} at issuer {exit_command.issuer} has no inputs",
                    )
                deposit = candidates[0]

            exits[deposit] += exit_command.amount.quantity
        return exits

    def _check_balances(
        self,
        input_groups: dict[DepositKey, list[LedgerRecord]],
        output_groups: dict[DepositKey, list[LedgerRecord]],
        exits: dict[DepositKey, int],
        currency: Currency,
    ) -> Violation | None:
        keys = list(input_groups) + [key for key in exits if key not in input_groups]
        for key in keys:
            sum_in = _total(input_groups.get(key, ()))
            sum_out = _total(output_groups.get(key, ()))
            exited = exits.get(key, 0)
            if sum_in - exited != sum_out:
                amount_in = Amount(quantity=sum_in, currency=currency)
                amount_out = Amount(quantity=sum_out, currency=currency)
                amount_exited = Amount(quantity=exited, currency=currency)
                return Violation(
                    kind=ViolationKind.UNBALANCED_GROUP,
                    message=(
                        f"Amounts do not balance for deposit {key}: "
                        f"in={amount_in} exit={amount_exited} out={amount_out}"
                    ),
                    group_key=key,
                )
        return None


def _group_by_deposit(records: Iterable[LedgerRecord]) -> dict[DepositKey, list[LedgerRecord]]:
    groups: dict[DepositKey, list[LedgerRecord]] = defaultdict(list)
    for record in records:
        groups[record.deposit].append(record)
    return groups


def _total(records: Sequence[LedgerRecord]) -> int:
    return sum(record.amount.quantity for record in records)
