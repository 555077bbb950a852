"""Command line interface for deepnet."""
