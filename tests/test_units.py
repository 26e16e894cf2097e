"""Tests for unit conversion."""

import pytest

from memtop.units import (
    GIGABYTE,
    KILOBYTE,
    MEGABYTE,
    InvalidUnitError,
    convert_units,
    divisor_for,
    multiplier_for,
)


class TestDivisorFor:
    """Tests for caller-facing unit lookup."""

    @pytest.mark.parametrize(
        ("units", "expected"),
        [
            ("bytes", 1),
            ("kilobytes", KILOBYTE),
            ("KB", KILOBYTE),
            ("k", KILOBYTE),
            ("Megabytes", MEGABYTE),
            ("mb", MEGABYTE),
            ("M", MEGABYTE),
            ("gigabytes", GIGABYTE),
            ("Gb", GIGABYTE),
            ("g", GIGABYTE),
        ],
    )
    def test_known_units(self, units, expected):
        """Test every alias resolves case-insensitively."""
        assert divisor_for(units) == expected

    @pytest.mark.parametrize("units", ["", "kib", "terabytes", "b", "byte"])
    def test_unknown_units_raise(self, units):
        """Test unknown units are rejected."""
        with pytest.raises(InvalidUnitError):
            divisor_for(units)

    def test_invalid_unit_error_is_value_error(self):
        """Test InvalidUnitError can be caught as ValueError."""
        with pytest.raises(ValueError, match="Unknown units: parsecs"):
            divisor_for("parsecs")


class TestMultiplierFor:
    """Tests for permissive multipliers used while parsing."""

    def test_known_unit(self):
        assert multiplier_for("kB") == KILOBYTE

    def test_unknown_unit_defaults_to_bytes(self):
        assert multiplier_for("pages") == 1


class TestConvertUnits:
    """Tests for convert_units."""

    def test_bytes_returns_int_unchanged(self):
        """Test bytes keep their integer type."""
        result = convert_units(4096)
        assert result == 4096
        assert isinstance(result, int)

    def test_other_units_return_float(self):
        """Test non-byte units divide into a float."""
        result = convert_units(1536, "kb")
        assert result == 1.5
        assert isinstance(result, float)

    def test_sentinel_is_never_divided(self):
        """Test -1 comes back as -1 for every unit."""
        for units in ["bytes", "kb", "megabytes", "G"]:
            assert convert_units(-1, units) == -1

    def test_sentinel_still_validates_units(self):
        """Test an unknown unit raises even for the sentinel."""
        with pytest.raises(InvalidUnitError):
            convert_units(-1, "furlongs")
