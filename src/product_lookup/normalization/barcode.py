"""Barcode normalization and equivalence.

Retail sources encode the same product barcode in different shapes. The
functions here expand any supported input into the set of representations
that denote the same product, so results from different sources can be
matched against each other.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Set

from product_lookup.errors import CheckDigitComputationError

__all__ = [
    "BarcodeFormat",
    "BarcodeVariant",
    "MIN_CHECK_DIGIT_CORE_LENGTH",
    "normalize_barcode",
    "calculate_check_digit",
    "has_valid_check_digit",
    "generate_variants",
    "equivalence_set",
    "are_equivalent",
    "is_barcode",
]

# EAN-8 has a 7 digit core, the shortest GS1 code handled here.
MIN_CHECK_DIGIT_CORE_LENGTH = 7

# ASCII digits only
_NON_DIGITS = re.compile(r"[^0-9]")
_BARCODE_QUERY = re.compile(r"^[0-9]{8,14}$")


class BarcodeFormat(str, Enum):
    """Barcode representations understood by the normalizer."""
    EAN_13 = "EAN-13"
    UPC_A = "UPC-A"
    UPC_A_CORE = "UPC-A-Core"
    EAN_8 = "EAN-8"
    GTIN_14 = "GTIN-14"


@dataclass(frozen=True)
class BarcodeVariant:
    """One representation of a barcode.

    Attributes:
        barcode: The digit string.
        format: Which encoding the digit string follows.
        note: Human readable description of the representation.
    """
    barcode: str
    format: BarcodeFormat
    note: str = ""


def normalize_barcode(raw: Optional[str]) -> str:
    """Return only the digits of *raw* ("" for ``None``)."""
    if not raw:
        return ""
    return _NON_DIGITS.sub("", str(raw))


def calculate_check_digit(core: str) -> str:
    """Compute the GS1 mod-10 check digit for *core*.

    Weights alternate 3 and 1 starting with 3 on the rightmost digit, which
    makes the same routine valid for EAN-8, UPC-A and EAN-13 cores.

    Raises:
        CheckDigitComputationError: if *core* is shorter than 7 digits or
            contains anything other than digits.
    """
    if core is None or len(core) < MIN_CHECK_DIGIT_CORE_LENGTH:
        raise CheckDigitComputationError(
            f"Check digit core must have at least {MIN_CHECK_DIGIT_CORE_LENGTH} digits, got {core!r}"
        )
    if _NON_DIGITS.search(core):
        raise CheckDigitComputationError(f"Check digit core must be numeric, got {core!r}")

    total = 0
    for position, char in enumerate(reversed(core)):
        weight = 3 if position % 2 == 0 else 1
        total += int(char) * weight
    return str((10 - (total % 10)) % 10)


def has_valid_check_digit(code: str, is_ean: bool = False) -> bool:
    """Return True when the trailing digit of *code* is its GS1 check digit.

    ``is_ean`` is accepted for callers that track the symbology; for 8, 12
    and 13 digit inputs the check digit is always the last one so it does
    not change the outcome.
    """
    digits = normalize_barcode(code)
    if len(digits) <= MIN_CHECK_DIGIT_CORE_LENGTH or len(digits) != len(code or ""):
        return False
    core, claimed = digits[:-1], digits[-1]
    return calculate_check_digit(core) == claimed


def _upc_family(upc_a: str) -> Set[BarcodeVariant]:
    return {
        BarcodeVariant("0" + upc_a, BarcodeFormat.EAN_13, "EAN-13 (13 digits, leading zero)"),
        BarcodeVariant(upc_a, BarcodeFormat.UPC_A, "UPC-A (12 digits, with check digit)"),
        BarcodeVariant(upc_a[:-1], BarcodeFormat.UPC_A_CORE, "UPC-A core (11 digits, no check digit)"),
    }


def generate_variants(raw: Optional[str]) -> Set[BarcodeVariant]:
    """Expand *raw* into every equivalent barcode representation.

    Unsupported or ambiguous shapes (non-US EAN-13, odd lengths) yield an
    empty set; callers treat that as "equivalence cannot be established".
    """
    digits = normalize_barcode(raw)
    length = len(digits)

    if length == 14:
        return {BarcodeVariant(digits, BarcodeFormat.GTIN_14, "GTIN-14 (14 digits)")}
    if length == 8:
        return {BarcodeVariant(digits, BarcodeFormat.EAN_8, "EAN-8 (8 digits)")}
    if length == 13:
        if digits[0] != "0":
            # Non-US EAN-13 has no safe UPC mapping
            return set()
        return _upc_family(digits[1:])
    if length == 12:
        return _upc_family(digits)
    if length == 11:
        return _upc_family(digits + calculate_check_digit(digits))
    return set()


def equivalence_set(raw: Optional[str]) -> FrozenSet[str]:
    """Barcode strings considered the same product as *raw*.

    Includes the stripped input itself so codes without known variants
    still match an identical code.
    """
    digits = normalize_barcode(raw)
    if not digits:
        return frozenset()
    return frozenset({v.barcode for v in generate_variants(digits)} | {digits})


def are_equivalent(a: Optional[str], b: Optional[str]) -> bool:
    return bool(equivalence_set(a) & equivalence_set(b))


def is_barcode(query: Optional[str]) -> bool:
    """Whether a free-form query looks like a barcode (8-14 digits)."""
    if not query or not query.strip():
        return False
    cleaned = query.strip().replace("-", "").replace(" ", "")
    return bool(_BARCODE_QUERY.match(cleaned))
