"""Verify and rename workflows, metadata sidecars, and progress output."""
