"""Real-time score board synchronization server."""
