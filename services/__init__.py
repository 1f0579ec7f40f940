"""Band Stage - Service entry points (HTTP API and command line runners)."""
