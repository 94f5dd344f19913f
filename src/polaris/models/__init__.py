"""Models for the Polaris SDK."""
