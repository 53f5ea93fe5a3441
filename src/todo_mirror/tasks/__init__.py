"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Priority), validation, update commands
- task_cache.py: optimistic in-memory mirror of the remote list
- reorder.py: move-by-position resolver (full reindex / single item)
"""
