"""Police written-exam scoring, ranking and pass-cut release engine."""

__version__ = "1.0.0"
