"""Meterly: credit ledger and usage metering service."""
