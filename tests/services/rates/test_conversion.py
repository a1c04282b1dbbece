from decimal import Decimal

import pytest

from fxconvert.core.errors import FetchError, InitializationError, ParseError
from fxconvert.services.rates.conversion import (
    ConversionResult,
    Converter,
    ParseFailure,
    Transaction,
    UnknownCurrency,
)


def test_convert_one_sample_aud(converter):
    result = converter.convert_one("AUD 562.5")

    assert isinstance(result, ConversionResult)
    assert str(result) == "USD 515.54"
    assert result.amount == Decimal("515.54")
    assert result.rate == Decimal("0.9165")
    assert result.source == Transaction("AUD", Decimal("562.5"))


def test_convert_many_sample_batch(converter):
    results = converter.convert_many(["JPY 5000", "CZK 62.5"])

    assert [str(r) for r in results] == ["USD 47.15", "USD 2.76"]


def test_rounding_is_half_up(settings):
    converter = Converter.from_rates({"EUR": "1"}, settings=settings)

    assert str(converter.convert_one("EUR 0.125")) == "USD 0.13"
    assert str(converter.convert_one("EUR 0.135")) == "USD 0.14"
    assert str(converter.convert_one("EUR -0.125")) == "USD -0.13"


@pytest.mark.parametrize(
    "code,rate,amount",
    [
        ("CHF", "1.1154", "123.45"),
        ("GBP", "1.27", "0"),
        ("MXN", "0.0589", "1000000"),
        ("KRW", "0.00075", "12.3"),
    ],
)
def test_convert_one_is_amount_times_rate(settings, code, rate, amount):
    converter = Converter.from_rates({code: rate}, settings=settings)

    result = converter.convert_one(f"{code} {amount}")

    expected = (Decimal(amount) * Decimal(rate)).quantize(Decimal("0.01"), rounding="ROUND_HALF_UP")
    assert result.amount == expected
    assert str(result) == f"USD {expected:.2f}"


def test_output_has_two_decimals_and_no_grouping(settings):
    converter = Converter.from_rates({"CHF": "1"}, settings=settings)

    assert str(converter.convert_one("CHF 1234567")) == "USD 1234567.00"


def test_unknown_currency_is_a_result_not_an_error(converter):
    result = converter.convert_one("XYZ 10")

    assert isinstance(result, UnknownCurrency)
    assert result.code == "XYZ"
    assert result.ok is False


def test_codes_are_case_sensitive(converter):
    assert isinstance(converter.convert_one("aud 1"), UnknownCurrency)


def test_default_currency_converts_at_parity(converter):
    assert str(converter.convert_one("USD 12.345")) == "USD 12.35"


@pytest.mark.parametrize(
    "text",
    ["CHF", "CHF abc", "CHF  12", "CHF 1 2", " 12", "", "CHF 1e3", "CHF NaN", "CHF 1_000"],
)
def test_malformed_text_raises_parse_error(converter, text):
    with pytest.raises(ParseError):
        converter.convert_one(text)


def test_surrounding_whitespace_is_ignored(converter):
    assert str(converter.convert_one("  CHF 10\n")) == "USD 11.00"


def test_structured_transactions(converter):
    assert str(converter.convert_one(Transaction("CHF", Decimal("10")))) == "USD 11.00"
    assert str(converter.convert_one(("CHF", 10))) == "USD 11.00"
    assert str(converter.convert_one(("CHF", 0.1))) == "USD 0.11"


def test_batch_keeps_length_and_order_with_failures(converter):
    items = ["CHF 10", "XYZ 5", "CHF", "AUD 562.5", 42]

    results = converter.convert_many(items)

    assert len(results) == len(items)
    assert isinstance(results[0], ConversionResult)
    assert isinstance(results[1], UnknownCurrency)
    assert isinstance(results[2], ParseFailure)
    assert results[2].text == "CHF"
    assert str(results[3]) == "USD 515.54"
    assert isinstance(results[4], ParseFailure)


def test_empty_batch(converter):
    assert converter.convert_many([]) == []


def test_batch_accepts_generators(converter):
    results = converter.convert_many(f"CHF {n}" for n in range(3))

    assert [str(r) for r in results] == ["USD 0.00", "USD 1.10", "USD 2.20"]


def test_construction_fails_without_rates(settings, scripted, fetch_error):
    with pytest.raises(InitializationError) as exc:
        Converter(scripted(fetch_error), settings=settings)

    assert isinstance(exc.value.__cause__, FetchError)


def test_construction_fails_on_empty_feed(settings):
    with pytest.raises(InitializationError):
        Converter.from_rates({}, settings=settings)


def test_refresh_replaces_table_wholesale(settings, scripted):
    source = scripted({"CHF": "1.1", "AUD": "0.9"}, {"CHF": "1.2"})
    converter = Converter(source, settings=settings)

    converter.refresh()

    assert converter.lookup("CHF") == Decimal("1.2")
    assert converter.lookup("AUD") is None
    assert isinstance(converter.convert_one("AUD 1"), UnknownCurrency)


def test_failed_refresh_keeps_previous_rates(settings, scripted, fetch_error):
    source = scripted({"CHF": "1.1"}, fetch_error)
    converter = Converter(source, settings=settings)
    loaded_at = converter.loaded_at

    with pytest.raises(FetchError):
        converter.refresh()

    assert converter.lookup("CHF") == Decimal("1.1")
    assert converter.loaded_at == loaded_at
    assert str(converter.convert_one("CHF 10")) == "USD 11.00"


def test_invalid_snapshot_from_source_is_rejected(settings, scripted):
    source = scripted({"CHF": "1.1"}, {"CHF": "1.3", "BAD": "0"})
    converter = Converter(source, settings=settings)

    with pytest.raises(FetchError):
        converter.refresh()

    assert converter.lookup("CHF") == Decimal("1.1")
    assert converter.lookup("BAD") is None


def test_refresh_passes_timeout(settings, scripted):
    source = scripted({"CHF": "1.1"})
    converter = Converter(source, settings=settings, timeout=2.5)

    converter.refresh(timeout=0.5)

    assert source.timeouts == [2.5, 0.5]


def test_batch_uses_one_snapshot(settings, scripted):
    source = scripted({"CHF": "1"}, {"CHF": "2"})
    converter = Converter(source, settings=settings)

    def items():
        yield "CHF 1"
        converter.refresh()
        yield "CHF 1"

    results = converter.convert_many(items())

    assert [str(r) for r in results] == ["USD 1.00", "USD 1.00"]
    assert str(converter.convert_one("CHF 1")) == "USD 2.00"


def test_staleness(settings, scripted):
    from datetime import timedelta

    converter = Converter(scripted({"CHF": "1.1"}, {"CHF": "1.2"}), settings=settings)

    assert converter.is_stale() is False
    assert converter.refresh_if_stale() is False
    later = converter.loaded_at + timedelta(seconds=3601)
    assert converter.is_stale(now=later) is True


def test_refresh_if_stale_refetches(settings, scripted, monkeypatch):
    from datetime import timedelta

    from fxconvert.services.rates import table as table_module

    source = scripted({"CHF": "1.1"}, {"CHF": "1.2"})
    converter = Converter(source, settings=settings, max_age=60)
    later = converter.loaded_at + timedelta(minutes=5)
    monkeypatch.setattr(table_module, "_utcnow", lambda: later)

    assert converter.refresh_if_stale() is True
    assert converter.lookup("CHF") == Decimal("1.2")
    assert converter.loaded_at == later
    assert converter.refresh_if_stale() is False


def test_zero_max_age_disables_staleness(settings, scripted):
    converter = Converter(scripted({"CHF": "1.1"}), settings=settings, max_age=0)

    assert converter.is_stale() is False


def test_default_currency_override(settings):
    converter = Converter.from_rates({"USD": "0.92"}, default_currency="EUR", settings=settings)

    assert converter.default_currency == "EUR"
    assert str(converter.convert_one("USD 100")) == "EUR 92.00"


def test_converters_are_independent(settings):
    a = Converter.from_rates({"CHF": "1.1"}, settings=settings)
    b = Converter.from_rates({"CHF": "2"}, default_currency="EUR", settings=settings)

    assert str(a.convert_one("CHF 1")) == "USD 1.10"
    assert str(b.convert_one("CHF 1")) == "EUR 2.00"


def test_amounts_beyond_default_precision(settings):
    converter = Converter.from_rates({"CHF": "1.1", "JPY": "0.00943"}, settings=settings)

    big = converter.convert_one("CHF 1000000000000000000000000000")
    tiny_rate = converter.convert_one("JPY 123456789012345678901234567890.125")

    assert str(big) == "USD 1100000000000000000000000000.00"
    assert str(tiny_rate) == "USD 1164197520386419752038641975.20"


def test_batch_with_huge_amount_keeps_siblings(settings):
    converter = Converter.from_rates({"CHF": "1.1"}, settings=settings)

    results = converter.convert_many(["CHF 1", "CHF 1000000000000000000000000000", "CHF 2"])

    assert [str(r) for r in results] == [
        "USD 1.10",
        "USD 1100000000000000000000000000.00",
        "USD 2.20",
    ]


def test_explicit_source_and_uri_conflict(settings, scripted):
    with pytest.raises(ValueError):
        Converter(scripted({"CHF": "1.1"}), settings=settings, rate_source_uri="http://feed.example/rates.xml")


def test_snapshots_are_persisted_while_holding_the_refresh_lock(settings, scripted, mocker):
    store = mocker.Mock()
    held = []
    converter = None

    def save_snapshot(rates, fetched_at, source):
        held.append(converter is None or converter._refresh_lock.locked())
        return len(held)

    store.save_snapshot.side_effect = save_snapshot
    converter = Converter(scripted({"CHF": "1.1"}, {"CHF": "1.2"}), settings=settings, store=store)
    converter.refresh()

    assert held == [True, True]
    assert store.save_snapshot.call_args.args[0] == {"CHF": Decimal("1.2")}
