from __future__ import annotations

import pytest

from sentinel.utils.address import merge_addresses, tron_base58_to_hex, validate_tron_address

USDT = "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t"


def test_merge_addresses_dedupes_in_first_occurrence_order():
    assert merge_addresses(["TB", "TA"], ("TA", "TC"), ["TB"]) == ("TB", "TA", "TC")


def test_merge_addresses_is_case_sensitive_and_drops_empty():
    assert merge_addresses(["Tabc", "", "TABC"], None, ["Tabc"]) == ("Tabc", "TABC")


def test_merge_addresses_without_input():
    assert merge_addresses() == ()


def test_valid_address_passes():
    assert validate_tron_address(f"  {USDT} ") == USDT
    assert tron_base58_to_hex(USDT).startswith("41")


@pytest.mark.parametrize(
    "address",
    [
        "",
        "T123",
        "XR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t",
        "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj60",  # '0' no es base58
        "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6u",  # checksum
    ],
)
def test_invalid_addresses_raise(address):
    with pytest.raises(ValueError):
        validate_tron_address(address)
