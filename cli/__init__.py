"""Command line entry points for IntellGraph."""
