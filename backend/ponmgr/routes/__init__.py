"""Operator API blueprints."""
