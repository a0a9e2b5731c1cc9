"""Event and notification fan-out service for the library backend."""
