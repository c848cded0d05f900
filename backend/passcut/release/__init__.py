"""Pass-cut release readiness evaluation and publishing."""
