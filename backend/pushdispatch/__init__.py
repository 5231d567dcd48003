# backend/pushdispatch/__init__.py
"""
Push notification dispatch backend package.

This package contains:
- main: FastAPI application entrypoint
- dispatch: notification dispatch pipeline (store → audience → payload → OneSignal → record)
- alerts: operational alerts for failed dispatches
"""
