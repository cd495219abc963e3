"""Map search core: suggestions, cached resolution, recents and look-around."""

__version__ = "0.1.0"
