"""Services for EspressoBox."""
