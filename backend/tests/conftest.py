"""
Pytest configuration and fixtures for ScriptSentries tests.
"""
import json
import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Mock environment variables before importing app
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("LLM_MODEL", "gpt-4o-mini")

from core.classifier import RiskClassifier  # noqa: E402
from core.config import Settings  # noqa: E402
from core.lifecycle import LifecycleManager, MemberInvite  # noqa: E402
from core.models import ProjectRole, User  # noqa: E402
from core.pipeline import AnalysisPipeline  # noqa: E402
from core.store import WorkspaceStore  # noqa: E402


def llm_response(payload) -> SimpleNamespace:
    """Shape of an OpenAI chat completion carrying `payload` as JSON content."""
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def page_of(call_kwargs) -> int:
    """Page number from the user message of a chat completion call."""
    user_message = call_kwargs["messages"][1]["content"]
    return int(user_message.split(":", 1)[0].replace("PAGE", "").strip())


def risk_payload(entity: str, severity: str = "HIGH", **extra) -> dict:
    item = {
        "category": "PRODUCT_MISUSE",
        "subCategory": "BRAND_NAME_PRODUCTS",
        "severity": severity,
        "status": "PENDING",
        "entityName": entity,
        "snippet": f"He grabs a can of {entity}.",
        "reason": "Brand used in a negative context",
        "suggestion": "Replace with a fictional brand",
    }
    item.update(extra)
    return item


class FakeExtractor:
    """Stands in for the PDF extractor; records the scratch file it was given."""

    def __init__(self, pages: list[str] | None = None, error: Exception | None = None):
        self.pages = pages if pages is not None else ["INT. KITCHEN - NIGHT"]
        self.error = error
        self.seen_paths: list[Path] = []

    async def extract_pages(self, file_path: Path) -> list[str]:
        self.seen_paths.append(Path(file_path))
        if self.error is not None:
            raise self.error
        return list(self.pages)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with an isolated scratch directory."""
    return Settings(
        openai_api_key="test-openai-key",
        scratch_dir=tmp_path / "scratch",
        max_concurrent_pages=4,
        max_file_size_mb=1,
    )


@pytest.fixture
def scratch_dir(settings) -> Path:
    return settings.scratch_dir


@pytest.fixture
def store() -> WorkspaceStore:
    return WorkspaceStore()


@pytest.fixture
def lifecycle(store) -> LifecycleManager:
    return LifecycleManager(store)


@pytest.fixture
def users(store) -> dict[str, User]:
    """One user per project role plus an outsider, keyed by username."""
    names = ["alice", "bob", "carol", "dave", "erin", "mallory"]
    return {
        name: store.save_user(User(username=name, email=f"{name}@studio.test"))
        for name in names
    }


@pytest.fixture
def project(lifecycle, users):
    """
    Project created by alice (ATTORNEY) with bob as ANALYST, carol as
    MAIN_PRODUCTION_CONTACT, dave as PRODUCTION_ASSISTANT and erin as VIEWER.
    mallory is not a member.
    """
    return lifecycle.create_project(
        users["alice"].id,
        "Midnight Run",
        details={"studio_name": "Northlight Pictures", "genre": "Thriller"},
        members=[
            MemberInvite(users["bob"].id, ProjectRole.ANALYST),
            MemberInvite(users["carol"].id, ProjectRole.MAIN_PRODUCTION_CONTACT),
            MemberInvite(users["dave"].id, ProjectRole.PRODUCTION_ASSISTANT),
            MemberInvite(users["erin"].id, ProjectRole.VIEWER),
        ]
    )


@pytest.fixture
def mock_llm_client() -> MagicMock:
    """OpenAI-style client whose completions return no risks by default."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=llm_response({"risks": []}))
    return client


@pytest.fixture
def classifier(mock_llm_client, settings) -> RiskClassifier:
    return RiskClassifier(llm_client=mock_llm_client, settings=settings)


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor(pages=[
        "INT. DINER - NIGHT\nJACK cracks open a can of Coca-Cola.",
        "EXT. STREET - DAY\nJACK dials 555-867-5309.",
    ])


@pytest.fixture
def retention_alerts() -> list:
    return []


@pytest.fixture
def pipeline(store, classifier, extractor, settings, retention_alerts) -> AnalysisPipeline:
    return AnalysisPipeline(
        store,
        classifier=classifier,
        extractor=extractor,
        settings=settings,
        retention_alert=retention_alerts.append
    )


@pytest.fixture
def test_client(store, pipeline) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app bound to the test store."""
    from api.deps import get_pipeline
    from core.store import get_store
    from main import app

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_pdf_content() -> bytes:
    """Minimal PDF bytes; the fake extractor never parses them."""
    return b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>
endobj
trailer
<< /Size 4 /Root 1 0 R >>
%%EOF"""
