"""Shared utilities for tplgen."""
