"""Bridge that relays monitoring check events onto the Flapjack Redis queue."""

__version__ = "0.1.0"
