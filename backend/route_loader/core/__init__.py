"""Configuration and error kinds shared by every loader stage."""
