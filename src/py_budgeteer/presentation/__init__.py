"""Presentation layer: command line interface over the SDK."""
