"""Builtin hook plugins."""
