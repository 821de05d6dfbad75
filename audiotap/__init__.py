"""Real-time audio capture pipeline."""
