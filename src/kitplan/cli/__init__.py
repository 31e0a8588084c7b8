"""kitplan command-line interface."""
