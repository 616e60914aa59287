from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from soundcheck.api.deps import get_engine
from soundcheck.api.main import create_app


@pytest.fixture()
def api_client(engine):
    app = create_app(engine=engine)
    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
