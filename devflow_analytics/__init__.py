"""Developer activity analytics: scores, streaks, burnout risk and archetypes."""

__version__ = "0.1.0"
