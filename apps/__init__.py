"""Django apps of the booking engine."""
