from __future__ import annotations

import pytest

from domain.amount import USD, Amount, dollars, swiss_francs
from domain.coin_selection import CoinSelector, EmptySpendError, InsufficientBalanceError
from domain.ledger import DepositKey, LedgerRecord, MoveCommand, Transaction
from domain.validation import ValidationEngine
from tests.constants import ALICE_KEY, BOB_KEY, CAROL_KEY, MEGA_CORP, MINI_CORP

MOVE_BY_ALICE = MoveCommand(signers=frozenset({ALICE_KEY}))


def test_simple_direct_spend(coin_selector: CoinSelector, wallet: list[LedgerRecord]) -> None:
    expected = Transaction(
        inputs=(wallet[0],),
        outputs=(wallet[0].with_owner(BOB_KEY),),
        commands=(MOVE_BY_ALICE,),
    )
    assert coin_selector.craft_spend(dollars(100), BOB_KEY, wallet) == expected


def test_simple_spend_with_change(coin_selector: CoinSelector, wallet: list[LedgerRecord]) -> None:
    expected = Transaction(
        inputs=(wallet[0],),
        outputs=(
            wallet[0].with_owner(BOB_KEY).with_amount(dollars(10)),
            wallet[0].with_amount(dollars(90)),
        ),
        commands=(MOVE_BY_ALICE,),
    )
    assert coin_selector.craft_spend(dollars(10), BOB_KEY, wallet) == expected


def test_spend_with_two_inputs_merges_the_deposit(coin_selector: CoinSelector, wallet: list[LedgerRecord]) -> None:
    expected = Transaction(
        inputs=(wallet[0], wallet[1]),
        outputs=(wallet[0].with_owner(BOB_KEY).with_amount(dollars(500)),),
        commands=(MOVE_BY_ALICE,),
    )
    assert coin_selector.craft_spend(dollars(500), BOB_KEY, wallet) == expected


def test_spend_mixed_deposits(coin_selector: CoinSelector, wallet: list[LedgerRecord]) -> None:
    expected = Transaction(
        inputs=(wallet[0], wallet[1], wallet[2]),
        outputs=(
            wallet[0].with_owner(BOB_KEY).with_amount(dollars(500)),
            wallet[2].with_owner(BOB_KEY),
        ),
        commands=(MOVE_BY_ALICE,),
    )
    assert coin_selector.craft_spend(dollars(580), BOB_KEY, wallet) == expected


def test_change_goes_to_the_last_deposit(coin_selector: CoinSelector, wallet: list[LedgerRecord]) -> None:
    transaction = coin_selector.craft_spend(dollars(550), BOB_KEY, wallet)

    assert transaction.inputs == (wallet[0], wallet[1], wallet[2])
    assert transaction.outputs == (
        wallet[0].with_owner(BOB_KEY).with_amount(dollars(500)),
        wallet[2].with_owner(BOB_KEY).with_amount(dollars(50)),
        wallet[2].with_amount(dollars(30)),
    )
    ValidationEngine().verify(transaction)


def test_insufficient_balance(coin_selector: CoinSelector, wallet: list[LedgerRecord]) -> None:
    with pytest.raises(InsufficientBalanceError) as exc_info:
        coin_selector.craft_spend(dollars(1000), BOB_KEY, wallet)
    assert exc_info.value.requested == dollars(1000)
    assert exc_info.value.available == dollars(580)

    with pytest.raises(InsufficientBalanceError) as exc_info:
        coin_selector.craft_spend(swiss_francs(81), BOB_KEY, wallet)
    assert exc_info.value.requested == swiss_francs(81)
    assert exc_info.value.available == swiss_francs(80)


def test_empty_wallet_has_nothing_available(coin_selector: CoinSelector) -> None:
    with pytest.raises(InsufficientBalanceError) as exc_info:
        coin_selector.craft_spend(dollars(1), BOB_KEY, [])
    assert exc_info.value.available == dollars(0)


def test_zero_spend_is_rejected(coin_selector: CoinSelector, wallet: list[LedgerRecord]) -> None:
    with pytest.raises(EmptySpendError) as exc_info:
        coin_selector.craft_spend(dollars(0), BOB_KEY, wallet)
    assert exc_info.value.requested == dollars(0)


def test_other_currencies_are_ignored(coin_selector: CoinSelector, wallet: list[LedgerRecord]) -> None:
    transaction = coin_selector.craft_spend(swiss_francs(80), BOB_KEY, wallet)

    assert transaction.inputs == (wallet[3],)
    assert transaction.outputs == (wallet[3].with_owner(BOB_KEY),)


def test_zero_records_are_skipped(coin_selector: CoinSelector, wallet: list[LedgerRecord]) -> None:
    empty = wallet[0].with_amount(dollars(0))
    transaction = coin_selector.craft_spend(dollars(100), BOB_KEY, [empty, *wallet])

    assert transaction.inputs == (wallet[0],)
    ValidationEngine().verify(transaction)


def test_change_owner_override(coin_selector: CoinSelector, wallet: list[LedgerRecord]) -> None:
    transaction = coin_selector.craft_spend(dollars(10), BOB_KEY, wallet, change_owner=CAROL_KEY)

    assert transaction.outputs[-1].owner == CAROL_KEY
    assert transaction.outputs[-1].amount == dollars(90)


def test_all_input_owners_sign_the_move(coin_selector: CoinSelector) -> None:
    deposit = DepositKey(issuer=MEGA_CORP, reference=b"\x01")
    shared_wallet = [
        LedgerRecord(deposit=deposit, amount=dollars(10), owner=ALICE_KEY),
        LedgerRecord(deposit=deposit, amount=dollars(10), owner=CAROL_KEY),
    ]
    transaction = coin_selector.craft_spend(dollars(15), BOB_KEY, shared_wallet)

    assert transaction.commands == (MoveCommand(signers=frozenset({ALICE_KEY, CAROL_KEY})),)
    assert transaction.outputs[-1].owner == CAROL_KEY
    ValidationEngine().verify(transaction)


def test_wallet_may_be_any_iterable(coin_selector: CoinSelector, wallet: list[LedgerRecord]) -> None:
    transaction = coin_selector.craft_spend(dollars(100), BOB_KEY, iter(wallet))
    assert transaction.inputs == (wallet[0],)


@pytest.mark.parametrize("quantity", [1, 5000, 9999, 10000, 10001, 49999, 50000, 50001, 55000, 57999, 58000])
def test_crafted_spends_are_valid_exact_and_minimal(
    coin_selector: CoinSelector,
    engine: ValidationEngine,
    wallet: list[LedgerRecord],
    quantity: int,
) -> None:
    target = Amount(quantity=quantity, currency=USD)
    extra_deposit = DepositKey(issuer=MINI_CORP, reference=b"\x03")
    wallet = wallet + [LedgerRecord(deposit=extra_deposit, amount=dollars(5), owner=ALICE_KEY)]

    transaction = coin_selector.craft_spend(target, BOB_KEY, wallet)

    engine.verify(transaction)

    paid = sum(record.amount.quantity for record in transaction.outputs if record.owner == BOB_KEY)
    assert paid == quantity

    total_in = sum(record.amount.quantity for record in transaction.inputs)
    total_out = sum(record.amount.quantity for record in transaction.outputs)
    assert total_in == total_out

    usd_records = [record for record in wallet if record.amount.currency == target.currency]
    prefix: list[LedgerRecord] = []
    running = 0
    for record in usd_records:
        if running >= quantity:
            break
        prefix.append(record)
        running += record.amount.quantity
    assert list(transaction.inputs) == prefix
