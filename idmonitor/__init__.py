"""IDMonitor backend: identity document expiry tracking and reminders."""
