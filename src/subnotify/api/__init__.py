# REST API for the reminder queue.
# Created: 2026-03-03
