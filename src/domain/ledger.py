from __future__ import annotations

from typing import Iterable, Literal, NewType, TypeVar

from pydantic import BaseModel, ConfigDict, SerializeAsAny, field_serializer, field_validator, model_validator

from .amount import Amount

PublicKey = NewType("PublicKey", str)


def _parse_hex_reference(value: object) -> object:
    # Deposit references travel as hex strings on the wire.
    if isinstance(value, str):
        return bytes.fromhex(value)
    return value


class Institution(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    owning_key: PublicKey

    @model_validator(mode="after")
    def _validate_name(self) -> Institution:
        if not self.name:
            raise ValueError("Institution.name must be non-empty")
        return self

    def __str__(self) -> str:
        return self.name


class DepositKey(BaseModel):
    """Issuer plus the opaque reference of one deposit batch made at that issuer.

    Records are grouped by this key when checking that value is conserved. Keys have no
    ordering; groups iterate in the order their keys were first seen.
    """

    model_config = ConfigDict(frozen=True)

    issuer: Institution
    reference: bytes

    @field_validator("reference", mode="before")
    @classmethod
    def _parse_reference(cls, value: object) -> object:
        return _parse_hex_reference(value)

    @field_serializer("reference")
    def _serialize_reference(self, reference: bytes) -> str:
        return reference.hex()

    def __str__(self) -> str:
        return f"{self.issuer.name} [{self.reference.hex().upper()}]"


class LedgerRecord(BaseModel):
    """An unspent unit of value.

    A record is created as the output of a transaction (or by issuance, outside this
    engine) and consumed exactly once as the input of a later transaction. It is never
    modified in place; the ``with_*`` helpers return copies.
    """

    model_config = ConfigDict(frozen=True)

    deposit: DepositKey
    amount: Amount
    owner: PublicKey

    def with_owner(self, owner: PublicKey) -> LedgerRecord:
        return self.model_copy(update={"owner": owner})

    def with_amount(self, amount: Amount) -> LedgerRecord:
        return self.model_copy(update={"amount": amount})

    def with_deposit(self, deposit: DepositKey) -> LedgerRecord:
        return self.model_copy(update={"deposit": deposit})


class Command(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    signers: frozenset[PublicKey]

    @field_serializer("signers")
    def _serialize_signers(self, signers: frozenset[PublicKey]) -> list[str]:
        return sorted(signers)


class MoveCommand(Command):
    kind: Literal["move"] = "move"


class ExitCommand(Command):
    """Redeem ``amount`` at ``issuer``, taking it off the ledger.

    ``reference`` names the deposit being redeemed. Without it the exit applies to the
    issuer's only deposit in the transaction.
    """

    kind: Literal["exit"] = "exit"
    amount: Amount
    issuer: Institution
    reference: bytes | None = None

    @field_validator("reference", mode="before")
    @classmethod
    def _parse_reference(cls, value: object) -> object:
        return _parse_hex_reference(value)

    @field_serializer("reference")
    def _serialize_reference(self, reference: bytes | None) -> str | None:
        return None if reference is None else reference.hex()

    @property
    def deposit(self) -> DepositKey | None:
        if self.reference is None:
            return None
        return DepositKey(issuer=self.issuer, reference=self.reference)


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    inputs: tuple[LedgerRecord, ...] = ()
    outputs: tuple[LedgerRecord, ...] = ()
    commands: tuple[SerializeAsAny[Command], ...] = ()


CommandT = TypeVar("CommandT", bound=Command)


def select_commands(
    commands: Iterable[Command],
    command_type: type[CommandT],
    *,
    signer: PublicKey | None = None,
    issuer: Institution | None = None,
) -> list[CommandT]:
    """Commands of the given type, optionally signed by ``signer`` or by ``issuer``."""
    return [
        command
        for command in commands
        if isinstance(command, command_type)
        and (signer is None or signer in command.signers)
        and (issuer is None or issuer.owning_key in command.signers)
    ]


def require_single_command(commands: Iterable[Command], command_type: type[CommandT]) -> CommandT:
    matches = select_commands(commands, command_type)
    if len(matches) != 1:
        raise ValueError(f"Expected exactly one {command_type.__name__}, found {len(matches)}")
    return matches[0]
