"""Scholarship matching and catalog deduplication engine."""
