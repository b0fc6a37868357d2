"""Health checks e readiness."""
