import os
import sys
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")


@pytest.fixture()
def client() -> Iterator[TestClient]:
    # lazy import after env configured; a fresh app per test keeps the in-memory store isolated
    from src.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture()
def identity():
    from src.domain.entities.identity import IdentityEntity

    return IdentityEntity(uid="u1", full_name="Ada Lovelace", email="ada@example.com")
