"""Typer-based command line interface (``py-budgeteer``)."""
