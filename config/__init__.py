"""Application configuration loaded from the environment."""
