"""End-to-end tests driving the command-line interface."""
