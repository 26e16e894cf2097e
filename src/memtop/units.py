"""Unit table and conversions for memtop."""

KILOBYTE = 1024
MEGABYTE = 1024 * 1024
GIGABYTE = 1024 * 1024 * 1024

UNIT_DIVISORS: dict[str, int] = {
    "bytes": 1,
    "kilobytes": KILOBYTE,
    "kb": KILOBYTE,
    "k": KILOBYTE,
    "megabytes": MEGABYTE,
    "mb": MEGABYTE,
    "m": MEGABYTE,
    "gigabytes": GIGABYTE,
    "gb": GIGABYTE,
    "g": GIGABYTE,
}

# Value returned by every metric when the platform has no rollup file.
UNSUPPORTED = -1


class InvalidUnitError(ValueError):
    """Raised when a caller asks for a unit that is not in the unit table."""

    def __init__(self, units: object) -> None:
        super().__init__(f"Unknown units: {units}")
        self.units = units


def divisor_for(units: str) -> int:
    """
    Get the byte divisor for a caller-supplied unit token.

    Raises:
        InvalidUnitError: If the token is not a known unit.
    """
    divisor = UNIT_DIVISORS.get(str(units).lower())
    if divisor is None:
        raise InvalidUnitError(units)
    return divisor


def multiplier_for(token: str) -> int:
    """Get the byte multiplier for a unit found in rollup text, defaulting to 1."""
    return UNIT_DIVISORS.get(token.lower(), 1)


def convert_units(value: int, units: str = "bytes") -> int | float:
    """
    Convert a byte count to the requested unit.

    Bytes are returned unchanged as an int, any other unit as a float.
    The UNSUPPORTED sentinel is never divided.
    """
    divisor = divisor_for(units)
    if value == UNSUPPORTED or divisor == 1:
        return value
    return value / divisor
