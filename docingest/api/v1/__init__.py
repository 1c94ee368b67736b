"""V1 package."""
