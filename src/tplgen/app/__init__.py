"""Application services for tplgen."""
