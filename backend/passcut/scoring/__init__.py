"""Scoring engine: subject rules, per-submission scoring, answer keys."""
