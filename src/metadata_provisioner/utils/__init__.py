"""Utility helpers shared across the metadata provisioner."""
