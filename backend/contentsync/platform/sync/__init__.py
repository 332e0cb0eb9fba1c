"""Sync orchestration, retries and run state."""
