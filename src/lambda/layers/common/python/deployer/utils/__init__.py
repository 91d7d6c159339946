"""Logging helpers for the deployer layer."""
