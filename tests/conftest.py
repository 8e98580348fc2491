import os
import tempfile

# Point the application engine at a throwaway database before it is imported
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.mkdtemp(), 'dengue_watch_test.db')}",
)

import pytest

from tests.fakes import InMemoryStore, RecordingNotifier


@pytest.fixture
def fake_store():
    return InMemoryStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()
