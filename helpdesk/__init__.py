"""Help-desk request handlers backed by an external reasoning service."""

from .__version__ import __version__

__all__ = ["__version__"]
