"""Utility functions."""

from src.utils.audit import log_action
from src.utils.errors import AggregateError, ErrorCode, LedgerAccessError
from src.utils.money import quantize_money, to_decimal
from src.utils.password import hash_password, verify_password

__all__ = [
    "hash_password",
    "verify_password",
    "log_action",
    "AggregateError",
    "ErrorCode",
    "LedgerAccessError",
    "quantize_money",
    "to_decimal",
]
