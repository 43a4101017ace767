"""
Reminder subsystem.

Components:
- reminder_models.py: NotificationRecord, ReminderState, record id derivation
- reminder_store.py: SQLite-backed record store with compare-and-swap transitions
- reminder_firer.py: re-validates one record and alerts or suppresses it
- reminder_scheduler.py: timer registry + reconcile loop + background runner
- reminder_api.py: schedule / snooze / clear / task-status hooks
"""
