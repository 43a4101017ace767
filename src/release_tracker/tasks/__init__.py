"""
Task subsystem (the minimal checklist surface the reminders depend on).

Components:
- task_models.py: data structures (Task, TaskStatus)
- task_store.py: SQLite-backed storage + status updates
"""
