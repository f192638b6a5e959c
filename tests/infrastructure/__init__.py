"""Shared test infrastructure for the gifcap test suite."""
