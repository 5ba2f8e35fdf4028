"""Barcode normalization helpers."""

from .barcode import (
    BarcodeFormat,
    BarcodeVariant,
    are_equivalent,
    calculate_check_digit,
    equivalence_set,
    generate_variants,
    has_valid_check_digit,
    is_barcode,
    normalize_barcode,
)

__all__ = [
    "BarcodeFormat",
    "BarcodeVariant",
    "are_equivalent",
    "calculate_check_digit",
    "equivalence_set",
    "generate_variants",
    "has_valid_check_digit",
    "is_barcode",
    "normalize_barcode",
]
