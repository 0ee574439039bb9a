"""
Utility modules for the notification engine.

This package contains shared helpers used across the engine, currently the
timezone-aware datetime utilities.
"""
