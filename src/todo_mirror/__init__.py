"""
todo-mirror: a task list mirrored from a remote HTTP store with optimistic updates.
"""

__version__ = "0.1.0"
