from .task import Task, TaskPriority
from .user import User

# Export all models for easy importing
__all__ = ["Task", "TaskPriority", "User"]
