from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from config import AppSettings, config
from domain.amount import Amount, Currency
from domain.coin_selection import CoinSelectionError, CoinSelector
from domain.ledger import PublicKey
from domain.validation import ValidationEngine
from importers.wire import WireCodec, load_wallet
from utils.formatting import parse_pennies
from utils.transaction_summary import render_transaction


def build_engine(settings: AppSettings) -> ValidationEngine:
    return ValidationEngine(allow_issuer_only_exit=settings.allow_issuer_only_exit)


def run_verify(transaction_path: Path, *, engine: ValidationEngine, codec: WireCodec) -> int:
    transaction = codec.load_transaction(transaction_path)
    violation = engine.check(transaction)
    if violation is not None:
        print(f"REJECTED {violation.kind}: {violation.message}")
        return 1
    print("ACCEPTED")
    return 0


def run_spend(
    wallet_path: Path,
    *,
    amount: Amount,
    recipient: PublicKey,
    change_owner: PublicKey | None,
    out_path: Path | None,
    engine: ValidationEngine,
    codec: WireCodec,
) -> int:
    wallet = load_wallet(wallet_path)
    try:
        transaction = CoinSelector().craft_spend(amount, recipient, wallet, change_owner=change_owner)
    except CoinSelectionError as err:
        print(f"FAILED {err}")
        return 1

    # A crafted spend that fails verification is a bug, so let it raise.
    engine.verify(transaction)

    print(f"Spend of {amount} to {recipient}:")
    render_transaction(transaction)
    if out_path is not None:
        codec.dump_transaction(transaction, out_path)
        print(f"Wrote transaction to {out_path}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    settings = config()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    parser = argparse.ArgumentParser(description="Verify cash transactions and craft spends from a wallet.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    verify_parser = subparsers.add_parser("verify", help="Check a transaction JSON file against the cash contract.")
    verify_parser.add_argument("transaction", type=Path)

    spend_parser = subparsers.add_parser("spend", help="Craft a spend from a wallet JSON file.")
    spend_parser.add_argument("--wallet", type=Path, default=Path("data/wallet.json"))
    spend_parser.add_argument("--amount", type=parse_pennies, required=True, help="Decimal amount, e.g. 10.50")
    spend_parser.add_argument("--currency", default=settings.default_currency)
    spend_parser.add_argument("--recipient", required=True)
    spend_parser.add_argument("--change-owner", default=None)
    spend_parser.add_argument("--out", type=Path, default=None)

    args = parser.parse_args(argv)
    engine = build_engine(settings)
    codec = WireCodec()

    if args.command == "verify":
        return run_verify(args.transaction, engine=engine, codec=codec)

    return run_spend(
        args.wallet,
        amount=Amount(quantity=args.amount, currency=Currency(args.currency.upper())),
        recipient=PublicKey(args.recipient),
        change_owner=PublicKey(args.change_owner) if args.change_owner else None,
        out_path=args.out,
        engine=engine,
        codec=codec,
    )


if __name__ == "__main__":
    sys.exit(main())
