"""Ranking and population engine."""
