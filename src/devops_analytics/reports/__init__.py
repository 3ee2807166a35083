"""Report projection and CSV output."""
