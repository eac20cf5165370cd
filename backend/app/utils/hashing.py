"""Deterministic 32-bit string hash, matching the browser-side gallery hash."""

MOCK_LOCATIONS = (
    "Paris, France",
    "Kyoto, Japan",
    "New York, USA",
    "Cairo, Egypt",
    "Sydney, Australia",
)


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def js_string_hash(text: str) -> int:
    """``h = code + ((h << 5) - h)`` over UTF-16 code units, int32 shifts."""
    units = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(units), 2):
        code = units[i] | (units[i + 1] << 8)
        h = code + (_to_int32(_to_int32(h) << 5) - h)
    return h


def mock_location(name: str) -> str:
    """Placeholder location label picked by hashing the file name."""
    return MOCK_LOCATIONS[abs(js_string_hash(name)) % len(MOCK_LOCATIONS)]
