from typing import Generator

import pytest

from config import config
from domain.amount import dollars, swiss_francs
from domain.coin_selection import CoinSelector
from domain.ledger import DepositKey, LedgerRecord
from domain.validation import ValidationEngine
from tests.constants import ALICE_KEY, MEGA_CORP, MINI_CORP


@pytest.fixture(autouse=True)
def _reset_config_cache() -> Generator[None, None, None]:
    config.cache_clear()
    yield
    config.cache_clear()


@pytest.fixture(scope="function")
def engine() -> ValidationEngine:
    return ValidationEngine()


@pytest.fixture(scope="function")
def coin_selector() -> CoinSelector:
    return CoinSelector()


@pytest.fixture(scope="function")
def wallet() -> list[LedgerRecord]:
    return [
        LedgerRecord(deposit=DepositKey(issuer=MEGA_CORP, reference=b"\x01"), amount=dollars(100), owner=ALICE_KEY),
        LedgerRecord(deposit=DepositKey(issuer=MEGA_CORP, reference=b"\x01"), amount=dollars(400), owner=ALICE_KEY),
        LedgerRecord(deposit=DepositKey(issuer=MINI_CORP, reference=b"\x01"), amount=dollars(80), owner=ALICE_KEY),
        LedgerRecord(deposit=DepositKey(issuer=MINI_CORP, reference=b"\x02"), amount=swiss_francs(80), owner=ALICE_KEY),
    ]
