"""Utility functions for charge-recon."""

from charge_recon.utils.parsing import (
    parse_amount,
    parse_date,
    read_table,
)

__all__ = ["parse_date", "parse_amount", "read_table"]
