"""Developer-facing command line for wayfarer worlds."""
