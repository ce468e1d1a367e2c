"""Settings loading and validation for the live-sync dashboard core."""
