"""Recipe digitization and scaling service."""

__version__ = "0.1.0"
