"""Core settings, logging and shared models."""
