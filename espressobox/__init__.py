"""EspressoBox - a personal espresso brewing diary."""

__version__ = "1.0.0"
