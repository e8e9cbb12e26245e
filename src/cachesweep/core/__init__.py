"""cachesweep core engine."""
