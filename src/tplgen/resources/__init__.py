"""Packaged resources for tplgen."""
