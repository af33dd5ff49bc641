"""onionctl - client for the Tor control protocol."""

__version__ = "0.1.0"
