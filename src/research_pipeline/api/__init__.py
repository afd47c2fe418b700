"""HTTP surface for the research pipeline."""
