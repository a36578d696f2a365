"""Text-generation gateway and structured extraction."""
