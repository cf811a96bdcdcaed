"""Crypto quote server backend."""
