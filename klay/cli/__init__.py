"""Command-line interface for klay (``python -m klay.cli``)."""
