"""Environment-driven configuration."""
