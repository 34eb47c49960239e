"""Billing and daily ledger for a fish trading business."""

__version__ = "0.1.0"
