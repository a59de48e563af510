"""Smart sort services: signal aggregation, scoring, recompute, scheduling, and ranking."""
