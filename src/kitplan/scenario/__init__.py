"""Scenario contract models and snapshot I/O."""
