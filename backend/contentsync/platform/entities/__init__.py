"""Record models for the sync pipeline."""
