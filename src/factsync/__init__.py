"""factsync - Transaction log synchronization for an embedded fact store."""

__version__ = "0.1.0"
