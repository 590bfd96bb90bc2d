"""Version information for RockBLOCKPy."""

__version__ = "0.1.0"
