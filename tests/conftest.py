from pathlib import Path

import pytest

DEMO_SNAPSHOT = Path(__file__).resolve().parents[1] / "examples" / "demo" / "snapshot.yaml"


@pytest.fixture
def demo_snapshot_path() -> Path:
    return DEMO_SNAPSHOT
