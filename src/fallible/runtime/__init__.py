"""Runtime layer: execution pools, timers, atomic cells and logging."""
