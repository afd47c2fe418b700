"""Accept and worker halves of the research pipeline."""
