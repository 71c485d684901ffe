"""Document-set storage on top of a vector-search backend."""

__version__ = "0.1.0"
