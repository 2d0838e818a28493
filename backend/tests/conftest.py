import pathlib
import sys

import pytest


REPO_ROOT = pathlib.Path(__file__).resolve().parents[2]
sys.path.append(str(REPO_ROOT))


@pytest.fixture()
def api_client():
    from backend.app.main import app
    from fastapi.testclient import TestClient

    client = TestClient(app)
    try:
        yield client
    finally:
        client.close()
