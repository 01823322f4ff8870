"""Command line entry points for tplgen."""
