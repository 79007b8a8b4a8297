import pytest

from utils import format_currency, is_solana_address, parse_symbols, short_address


@pytest.mark.unit
@pytest.mark.parametrize(
    "address, expected",
    [
        ("7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU", True),
        (" 7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU ", True),
        ("0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045", False),
        ("bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh", False),
        # valid base58, but a 25-byte Bitcoin payload
        ("1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa", False),
        ("my-friend", False),
    ],
)
def test_is_solana_address(address, expected):
    assert is_solana_address(address) is expected


@pytest.mark.unit
def test_parse_symbols():
    assert parse_symbols("sol, btc,,eth,SOL ") == ["SOL", "BTC", "ETH"]
    assert parse_symbols("") == []


@pytest.mark.unit
def test_format_currency():
    assert format_currency(845_000_000, decimals=0) == "$845M"
    assert format_currency(2_400_000_000) == "$2.40B"
    assert format_currency(12.5) == "$12.50"


@pytest.mark.unit
def test_short_address():
    assert short_address("7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU") == "7xKXtg...osgAsU"
    assert short_address("short") == "short"
