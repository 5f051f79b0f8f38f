"""CLI module.

This module provides the click command line interface.
"""
