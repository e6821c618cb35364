"""Application workflows orchestrating domain computations and runtime services."""
