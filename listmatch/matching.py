
from bisect import bisect_left
from typing import Iterator, Sequence


def contains(haystack: Sequence[int], needle: int) -> bool:
    """Binary search; haystack must already be sorted."""
    i = bisect_left(haystack, needle)
    return i != len(haystack) and haystack[i] == needle


def match(haystack: Sequence[int], needles: Sequence[int]) -> bytes:
    """Mask with bit i set iff needles[i] is in haystack, 8 per byte, MSB first."""
    out = bytearray((len(needles) + 7) // 8)
    if not haystack:
        return bytes(out)
    for i, needle in enumerate(needles):
        if contains(haystack, needle):
            out[i >> 3] |= 0x80 >> (i & 7)
    return bytes(out)


def iter_mask_bits(mask: bytes, count: int) -> Iterator[bool]:
    for i in range(min(count, len(mask) * 8)):
        yield bool(mask[i >> 3] & (0x80 >> (i & 7)))
