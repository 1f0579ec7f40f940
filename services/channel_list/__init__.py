"""Band Stage - Channel list command line runner."""
