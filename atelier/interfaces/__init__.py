"""Interfaces to the Atelier request router (command line)."""
