"""Answer-key correction preview, commit and bulk rescoring."""
