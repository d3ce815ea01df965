"""API route modules."""
from learnhub.routes import assignments, attempts, progress

__all__ = ["assignments", "attempts", "progress"]
