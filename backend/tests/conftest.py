# backend/tests/conftest.py
"""
Pytest configuration for the push dispatch backend tests.

- Ensures that the project root (backend/) is added to sys.path
  so that `import pushdispatch.*` works correctly in tests.
- Ensures required environment variables for tests are set
  with safe dummy values (OneSignal / Supabase).
"""

import os
import sys
from pathlib import Path


def _ensure_project_root_in_sys_path() -> None:
    # This file is located at: backend/tests/conftest.py
    # parents[1] -> backend/
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)

    if project_root_str not in sys.path:
        sys.path.insert(0, project_root_str)


def _ensure_test_env_vars() -> None:
    """
    Set dummy environment variables required for tests.

    These values are only for local testing and do NOT contain real secrets.
    """
    os.environ.setdefault("ONESIGNAL_APP_ID", "dummy-onesignal-app-id")
    os.environ.setdefault("ONESIGNAL_REST_API_KEY", "dummy-onesignal-rest-key")
    os.environ.setdefault("SUPABASE_URL", "https://dummy.supabase.co")
    os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "dummy-service-role-key")


_ensure_project_root_in_sys_path()
_ensure_test_env_vars()
