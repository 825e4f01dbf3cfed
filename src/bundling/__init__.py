"""Build configuration: chunk partitioning, artifact naming and the build cache."""
