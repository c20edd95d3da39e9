"""
Upload strategy selection.
"""
import enum

MIB = 1024 * 1024


class Strategy(str, enum.Enum):
    SINGLE = "single"
    MULTIPART = "multipart"


class MultipartMode(str, enum.Enum):
    AUTO = "auto"
    FORCE = "force"
    OFF = "off"


def select_strategy(mode: str, size_bytes: int, threshold_mb: int) -> Strategy:
    """
    Pick single PUT or multipart.

    "force" and "off" win unconditionally. Anything else, including an
    empty or unknown mode, behaves like "auto": multipart only when the size
    is strictly above the threshold.
    """
    if mode == MultipartMode.FORCE.value:
        return Strategy.MULTIPART
    if mode == MultipartMode.OFF.value:
        return Strategy.SINGLE
    if size_bytes > threshold_mb * MIB:
        return Strategy.MULTIPART
    return Strategy.SINGLE


def part_count(total_size_bytes: int, part_size_bytes: int) -> int:
    """Number of parts needed to cover total_size_bytes (ceiling division)."""
    return -(-total_size_bytes // part_size_bytes)
