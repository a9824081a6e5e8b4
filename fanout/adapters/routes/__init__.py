"""Route configuration loaders."""
