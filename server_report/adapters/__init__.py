"""Front-end adapters.

Adapters connect the report service to external systems (Discord and
Telegram). The HTTP surface lives in :mod:`server_report.web`.
"""
