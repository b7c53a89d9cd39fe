"""GACP certification workflow service."""
