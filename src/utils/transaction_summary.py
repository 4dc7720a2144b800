from __future__ import annotations

from typing import Sequence

from domain.ledger import ExitCommand, LedgerRecord, Transaction

from .formatting import format_pennies


def render_transaction(transaction: Transaction) -> None:
    _render_records("Inputs:", transaction.inputs)
    _render_records("Outputs:", transaction.outputs)

    print("Commands:")
    if not transaction.commands:
        print("  (none)")
    for command in transaction.commands:
        signers = ", ".join(sorted(command.signers))
        if isinstance(command, ExitCommand):
            target = command.deposit or command.issuer
            print(f"  {command.kind} {command.amount} at {target} signed by {signers}")
        else:
            print(f"  {command.kind} signed by {signers}")


def _render_records(title: str, records: Sequence[LedgerRecord]) -> None:
    print(title)
    if not records:
        print("  (empty)")
        return

    deposit_label = "Deposit"
    owner_label = "Owner"
    amount_label = "Amount"

    rows: list[tuple[str, str, str]] = []
    for record in records:
        amount_text = f"{format_pennies(record.amount.quantity)} {record.amount.currency}"
        rows.append((str(record.deposit), record.owner, amount_text))

    deposit_width = max(len(deposit_label), max(len(deposit) for deposit, _, _ in rows))
    owner_width = max(len(owner_label), max(len(owner) for _, owner, _ in rows))
    amount_width = max(len(amount_label), max(len(amount) for _, _, amount in rows))

    header = f"{deposit_label:<{deposit_width}} {owner_label:<{owner_width}} {amount_label:>{amount_width}}"

    lines = [header, "-" * len(header)]
    for deposit, owner, amount in rows:
        lines.append(f"{deposit:<{deposit_width}} {owner:<{owner_width}} {amount:>{amount_width}}")
    lines.append("-" * len(header))
    print("\n".join(lines))
