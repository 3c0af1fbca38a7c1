"""Eligibility filtering, dimensional scoring and priority tiering."""
