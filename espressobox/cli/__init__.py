"""Command line tools for EspressoBox."""
