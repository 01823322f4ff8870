"""Concrete adapters for tplgen ports."""
