from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services import report_sync_service


FULL_REPORT = """
### 1. Executive Summary
Your symptoms suggest a viral upper respiratory infection. Preliminary Concern Level: Low.

### 2. Detailed Analysis
* **Text Analysis:** Sore throat and mild fever for two days.
* **Visual Analysis:** Mild redness of the throat, no white patches.
* **Audio Analysis:** No audio provided.
* **Document Insights:** N/A

### 3. Medical Reasoning
* **Key Observations:** Fever below 38.5°C with throat redness.
* **Possibilities:** Viral pharyngitis; early strep throat.
* **Limitations:** Physical exam required.

### 4. Actionable Recommendations
* Drink warm fluids
* Rest for 48 hours
- Use a generic pain reliever as directed
* Rest for 48 hours

### 5. Red Flags
* Difficulty breathing
* Fever above 39.5°C lasting more than 3 days

### 6. When to Seek Care
Within 24h if symptoms worsen. An ENT specialist may help.

### 7. Physician Summary
**Subjective:** Sore throat, fever.
**Objective:** Pharyngeal erythema.
**Assessment:** Likely viral.
**Plan:** Symptomatic care.
"""

HIGH_REPORT = """
### 1. Executive Summary
Crushing chest pain radiating to the left arm. Preliminary Concern Level: High.

### 2. Detailed Analysis
* **Text Analysis:** Chest pain for 30 minutes with sweating.

### 4. Actionable Recommendations
* Call emergency services now

### 5. Red Flags
* Pain spreading to the jaw
"""


class FakeResponse:
    def __init__(self, data: list[dict[str, Any]]):
        self.data = data


class FakeQuery:
    def __init__(self, store: "FakeSupabase", table: str):
        self.store = store
        self.table = table
        self.operation: tuple[str, dict[str, Any]] | None = None
        self.filters: list[tuple[str, Any]] = []

    def insert(self, row: dict[str, Any]) -> "FakeQuery":
        self.operation = ("insert", row)
        return self

    def update(self, values: dict[str, Any]) -> "FakeQuery":
        self.operation = ("update", values)
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append((column, value))
        return self

    def execute(self) -> FakeResponse:
        if self.store.error is not None:
            raise self.store.error

        kind, payload = self.operation
        if kind == "update" and self.store.update_errors:
            raise self.store.update_errors.pop(0)
        rows = self.store.tables.setdefault(self.table, [])
        if kind == "insert":
            row = {"id": f"report-{len(rows) + 1}", **payload}
            rows.append(row)
            return FakeResponse([dict(row)])

        matched = [row for row in rows if all(row.get(col) == val for col, val in self.filters)]
        for row in matched:
            row.update(payload)
        return FakeResponse([dict(row) for row in matched])


class FakeSupabase:
    """In-memory stand-in for the supabase-py table API used by the sync service."""

    def __init__(self):
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.error: Exception | None = None
        # Raised one at a time by the next update calls
        self.update_errors: list[Exception] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str = "health_reports") -> list[dict[str, Any]]:
        return self.tables.get(name, [])


class FakeAPIError(Exception):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


@pytest.fixture
def fake_supabase(monkeypatch) -> FakeSupabase:
    fake = FakeSupabase()
    monkeypatch.setattr(report_sync_service, "get_supabase_client", lambda: fake)
    monkeypatch.delenv("HEALTH_REPORTS_TABLE", raising=False)
    return fake


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
