"""Road trip planner backend."""
