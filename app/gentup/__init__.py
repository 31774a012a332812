"""gentup - guided update assistant for Gentoo Linux."""

__version__ = "0.15.0"
