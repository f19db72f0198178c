"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Company, TaskStatus, ...)
- task_store.py: SQLite-backed storage + query/update helpers
- change_feed.py: per-table change notifications
- task_api.py: role-checked write helpers used by the view layer
"""
