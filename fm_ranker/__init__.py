"""fm-ranker — top-K task ranking over a pretrained factorization machine."""

__version__ = "0.1.0"
