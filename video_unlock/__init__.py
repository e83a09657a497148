"""Video catalog and one-time unlock payments backend."""

__version__ = "0.1.0"
