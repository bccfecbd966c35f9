"""Query, statistics, pattern-recognition and reward engines."""
