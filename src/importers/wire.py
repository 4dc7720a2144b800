from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from domain.ledger import Command, ExitCommand, LedgerRecord, MoveCommand, Transaction

logger = logging.getLogger(__name__)

_WALLET_ADAPTER = TypeAdapter(list[LedgerRecord])


class UnknownCommandKindError(ValueError):
    def __init__(self, kind: object) -> None:
        self.kind = kind
        super().__init__(f"Unknown command kind: {kind!r}")


class WireCodec:
    """JSON encoding of transactions with a pluggable set of command types.

    Commands are decoded by looking up their ``kind`` in a registry. Move and exit
    commands are always registered; other command types can be added with
    ``register_command`` and are passed through to the engine untouched.
    """

    def __init__(self) -> None:
        self._command_types: dict[str, type[Command]] = {}
        self.register_command(MoveCommand)
        self.register_command(ExitCommand)

    def register_command(self, command_type: type[Command]) -> None:
        kind = command_type.model_fields["kind"].default
        if not isinstance(kind, str) or not kind:
            raise ValueError(f"{command_type.__name__} must declare a default kind")
        self._command_types[kind] = command_type

    def decode_command(self, payload: Any) -> Command:
        if not isinstance(payload, dict):
            raise ValueError(f"Command must be a JSON object, got {type(payload).__name__}")
        kind = payload.get("kind")
        command_type = self._command_types.get(kind) if isinstance(kind, str) else None
        if command_type is None:
            raise UnknownCommandKindError(kind)
        return command_type.model_validate(payload)

    def decode_transaction(self, payload: Any) -> Transaction:
        if not isinstance(payload, dict):
            raise ValueError("Transaction must be a JSON object with inputs, outputs and commands")
        raw_commands = payload.get("commands") or []
        if not isinstance(raw_commands, list):
            raise ValueError(f"Transaction commands must be a JSON list, got {type(raw_commands).__name__}")
        commands = [self.decode_command(command) for command in raw_commands]
        return Transaction.model_validate(
            {
                "inputs": payload.get("inputs", []),
                "outputs": payload.get("outputs", []),
                "commands": commands,
            }
        )

    def encode_transaction(self, transaction: Transaction) -> dict[str, Any]:
        return transaction.model_dump(mode="json")

    def load_transaction(self, path: Path) -> Transaction:
        try:
            transaction = self.decode_transaction(json.loads(path.read_text()))
        except ValueError as err:
            raise ValueError(f"Transaction file {path} is invalid: {err}") from err
        logger.info(
            "Loaded transaction from %s: %d inputs, %d outputs, %d commands",
            path,
            len(transaction.inputs),
            len(transaction.outputs),
            len(transaction.commands),
        )
        return transaction

    def dump_transaction(self, transaction: Transaction, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.encode_transaction(transaction), indent=2) + "\n")


def load_wallet(path: Path) -> list[LedgerRecord]:
    """Load a wallet file: a JSON list of ledger records, in spending order."""
    try:
        payload = json.loads(path.read_text())
    except ValueError as err:
        raise ValueError(f"Wallet file {path} is not valid JSON: {err}") from err
    if not isinstance(payload, list):
        raise ValueError(f"Wallet file {path} must contain a JSON list of records")
    try:
        records = _WALLET_ADAPTER.validate_python(payload)
    except ValidationError as err:
        raise ValueError(f"Wallet file {path} is invalid: {err}") from err
    logger.info("Loaded %d records from wallet %s", len(records), path)
    return records


__all__ = ["UnknownCommandKindError", "WireCodec", "load_wallet"]
