"""Command line interface for the JML Trigger Engine."""
