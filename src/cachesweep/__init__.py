"""cachesweep: find and safely remove caches, logs, temporary files and stale downloads."""
