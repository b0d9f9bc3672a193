"""System configuration rows."""
