"""Background processing entry points for generation jobs."""
