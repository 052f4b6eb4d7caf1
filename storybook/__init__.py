"""Illustration orchestration service for personalized storybooks."""

__version__ = "0.1.0"
