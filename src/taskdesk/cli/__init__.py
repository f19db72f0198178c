"""Console entrypoint and slash commands."""
