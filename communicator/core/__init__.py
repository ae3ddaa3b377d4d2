"""Core orchestration: session state, intent routing and background work."""
