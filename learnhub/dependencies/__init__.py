"""FastAPI dependencies."""
from learnhub.dependencies.caller import get_caller_id

__all__ = ["get_caller_id"]
