from .category import Category
from .task import Task
from .task_level import TaskLevel
from .task_status import TaskStatus
from .user import User
from .workflow import Workflow

# Export all models for easy importing
__all__ = ["Category", "Task", "TaskLevel", "TaskStatus", "User", "Workflow"]
