"""Version information for devops-analytics."""

__version__ = "1.0.0"
