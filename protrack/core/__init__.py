"""Configuration, logging and access control."""
