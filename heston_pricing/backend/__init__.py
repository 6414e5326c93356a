"""Pricing engine backend."""
