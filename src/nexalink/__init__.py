"""Client-side state for working with several agent app servers at once."""

__version__ = "0.1.0"
