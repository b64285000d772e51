"""Branch predictor simulator: a BTB with two-bit counters and shared or private history."""

__version__ = "0.1.0"
__all__ = ["__version__"]