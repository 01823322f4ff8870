"""Port definitions (abstract collaborators) for tplgen."""
