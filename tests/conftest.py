import os
import tempfile
from datetime import datetime, timezone

import pytest

os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "lexum-test-logs"))
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")


@pytest.fixture
def now():
    return datetime(2026, 3, 10, 9, 30, tzinfo=timezone.utc)
