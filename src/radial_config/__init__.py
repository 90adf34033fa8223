"""Host-side configuration engine for the Radial Controller."""

__version__ = "0.1.0"
