"""Profile completeness and strength scoring."""
