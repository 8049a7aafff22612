"""Bot update distribution panel."""
