"""Outbox delivery: template rendering, the SMS channel and the polling worker."""
