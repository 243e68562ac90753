"""Shared fixtures for reserve snapshot tests."""

from __future__ import annotations

import logging

import pytest

from helpers import DAI_HEX, ETH_HEX, ROOT_HEX, markets_buffer, reserve_buffer
from reserve_snapshot.chain.codec import Address
from reserve_snapshot.utils.logger import ROOT_LOGGER_NAME


@pytest.fixture
def reserve_responses() -> dict[tuple[str, str], bytes | Exception]:
    """Root contract listing ETH and DAI markets with reserves 100 and 200."""
    eth = Address.from_hex(ETH_HEX)
    dai = Address.from_hex(DAI_HEX)
    return {
        (ROOT_HEX, "allMarkets"): markets_buffer([eth, dai]),
        (ETH_HEX, "totalReserves"): reserve_buffer(100),
        (DAI_HEX, "totalReserves"): reserve_buffer(200),
    }


@pytest.fixture
def asset_map() -> dict[str, str]:
    return {ETH_HEX: "ETH", DAI_HEX: "DAI"}


@pytest.fixture(autouse=True)
def reset_logging_handlers():
    """Detach handlers added by configure_logging so they never outlive a test's captured streams."""
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
