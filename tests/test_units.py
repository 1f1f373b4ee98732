"""Tests for display amount ↔ base unit conversion."""

from decimal import Decimal

import pytest

from crowdfund.units import format_amount, to_base_units


class TestUnits:
    def test_whole_and_fractional_amounts(self) -> None:
        assert to_base_units("100") == 1_000_000_000
        assert to_base_units("0.0000001") == 1
        assert to_base_units(Decimal("2.5"), scale=100) == 250

    def test_sub_unit_precision_rejected(self) -> None:
        with pytest.raises(ValueError, match="finer"):
            to_base_units("0.00000001")

    @pytest.mark.parametrize("bad", ["abc", "NaN", "Infinity"])
    def test_invalid_amounts(self, bad: str) -> None:
        with pytest.raises(ValueError):
            to_base_units(bad)

    def test_format(self) -> None:
        assert format_amount(1_000_000_000) == "100"
        assert format_amount(15_000_000) == "1.5"
        assert format_amount(0) == "0"

    def test_large_values_exact(self) -> None:
        big = 2**127 - 1
        assert to_base_units(format_amount(big)) == big
