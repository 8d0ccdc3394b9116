"""Bright Choice lighting spec pipeline."""
