"""Adapters to systems outside the package."""
