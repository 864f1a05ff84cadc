"""
API tests for the annotations router.

Uses FastAPI's TestClient with the settings and file store dependencies
overridden to point at pytest's tmp_path.
"""

import json
import threading

import fitz  # PyMuPDF
import pytest
from fastapi.testclient import TestClient

from annotator.config import get_settings
from annotator.main import app
from annotator.routers import annotations as annotations_router
from annotator.routers.annotations import get_file_store, get_version_normalizer
from annotator.services.canvas_annotation import FileKey
from annotator.services.file_store import LocalFileStore

RECT = {"type": "rect", "x": 10, "y": 10, "width": 50, "height": 20, "fill": "black"}


def annotations_json(*objects):
    return json.dumps({"page_setup": {"orientation": "portrait"}, "pages": [[{"objects": list(objects)}]]})


@pytest.fixture
def store(tmp_path):
    return LocalFileStore(tmp_path / "storage", max_bytes=10 * 1024 * 1024)


@pytest.fixture
def client(pt_settings, store):
    app.dependency_overrides[get_settings] = lambda: pt_settings
    app.dependency_overrides[get_file_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def source_bytes(build_pdf):
    return build_pdf()


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        """Test the health endpoint reports healthy."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestRender:
    """Tests for POST /api/v1/annotations/render."""

    def test_returns_annotated_pdf(self, client, source_bytes, pt_settings):
        """Test returns annotated pdf."""
        response = client.post(
            "/api/v1/annotations/render",
            files={"file": ("essay.pdf", source_bytes, "application/pdf")},
            data={"annotations": annotations_json(RECT)},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"

        doc = fitz.open(stream=response.content, filetype="pdf")
        assert doc.page_count == 1
        assert tuple(doc[0].get_drawings()[0]["rect"]) == pytest.approx((10, 10, 60, 30))
        doc.close()

        # Spooled uploads are removed
        assert list(pt_settings.tmp_dir.glob("*.pdf")) == []

    def test_rejects_non_pdf_name(self, client, source_bytes):
        """Test rejects non pdf name."""
        response = client.post(
            "/api/v1/annotations/render",
            files={"file": ("essay.docx", source_bytes, "application/octet-stream")},
            data={"annotations": annotations_json()},
        )
        assert response.status_code == 400

    def test_malformed_annotations(self, client, source_bytes):
        """Test invalid annotation JSON maps to 422."""
        response = client.post(
            "/api/v1/annotations/render",
            files={"file": ("essay.pdf", source_bytes, "application/pdf")},
            data={"annotations": "{broken"},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "MalformedAnnotationObject"

    def test_unsupported_color(self, client, source_bytes):
        """Test an unknown color maps to 422."""
        response = client.post(
            "/api/v1/annotations/render",
            files={"file": ("essay.pdf", source_bytes, "application/pdf")},
            data={"annotations": annotations_json(dict(RECT, fill="glitter"))},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "UnsupportedColorFormat"

    def test_unsupported_version(self, client, build_pdf):
        """Test a too-new source PDF maps to 415."""
        response = client.post(
            "/api/v1/annotations/render",
            files={"file": ("essay.pdf", build_pdf(version="1.7"), "application/pdf")},
            data={"annotations": annotations_json()},
        )

        assert response.status_code == 415
        assert response.json()["info"]["version"] == "1.7"

    def test_version_normalizer_is_applied(self, client, build_pdf, tmp_path):
        """Test version normalizer is applied."""
        calls = []

        class DowngradingNormalizer:
            def normalize(self, pdf_path):
                calls.append(pdf_path)
                target = tmp_path / "normalized.pdf"
                target.write_bytes(build_pdf(version="1.4"))
                return target

        app.dependency_overrides[get_version_normalizer] = DowngradingNormalizer

        response = client.post(
            "/api/v1/annotations/render",
            files={"file": ("essay.pdf", build_pdf(version="1.7"), "application/pdf")},
            data={"annotations": annotations_json(RECT)},
        )

        assert response.status_code == 200
        assert len(calls) == 1
        assert not (tmp_path / "normalized.pdf").exists()

    def test_normalizer_failure(self, client, build_pdf, pt_settings):
        """Test a failing converter yields a JSON error response."""
        class BrokenNormalizer:
            def normalize(self, pdf_path):
                raise RuntimeError("converter exited with status 1")

        app.dependency_overrides[get_version_normalizer] = BrokenNormalizer

        response = client.post(
            "/api/v1/annotations/render",
            files={"file": ("essay.pdf", build_pdf(version="1.7"), "application/pdf")},
            data={"annotations": annotations_json(RECT)},
        )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "NormalizationFailure"
        assert "converter exited" in body["detail"]
        assert list(pt_settings.tmp_dir.glob("*.pdf")) == []


class TestStore:
    """Tests for POST /api/v1/annotations/store."""

    def form(self, **overrides):
        data = {
            "annotations": annotations_json(RECT),
            "context_id": "12",
            "attempt_id": "34",
            "file_name": "essay.pdf",
        }
        data.update(overrides)
        return data

    def test_stores_annotated_file(self, client, store, source_bytes):
        """Test stores annotated file."""
        response = client.post(
            "/api/v1/annotations/store",
            files={"file": ("essay.pdf", source_bytes, "application/pdf")},
            data=self.form(),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["page_count"] == 1
        assert body["objects_rendered"] == 1
        assert body["item_id"] == 34

        key = FileKey(12, "question", "response_attachments", 34, "/", "essay.pdf")
        stored = store.load(key)
        assert len(stored) == body["file_size"]
        assert stored.startswith(b"%PDF-")

    def test_overwrites_existing_file(self, client, store, source_bytes):
        """Test overwrites existing file."""
        for objects in ([RECT], [RECT, dict(RECT, x=100)]):
            response = client.post(
                "/api/v1/annotations/store",
                files={"file": ("essay.pdf", source_bytes, "application/pdf")},
                data=self.form(annotations=annotations_json(*objects)),
            )
            assert response.status_code == 200

        key = FileKey(12, "question", "response_attachments", 34, "/", "essay.pdf")
        doc = fitz.open(stream=store.load(key), filetype="pdf")
        assert len(doc[0].get_drawings()) == 2
        doc.close()

    def test_too_large(self, client, store, source_bytes):
        """Test an oversized result maps to 413."""
        store.max_bytes = 100

        response = client.post(
            "/api/v1/annotations/store",
            files={"file": ("essay.pdf", source_bytes, "application/pdf")},
            data=self.form(),
        )

        assert response.status_code == 413
        assert response.json()["error"] == "FileTooLarge"

    def test_missing_form_field(self, client, source_bytes):
        """Test missing form field."""
        data = self.form()
        del data["attempt_id"]

        response = client.post(
            "/api/v1/annotations/store",
            files={"file": ("essay.pdf", source_bytes, "application/pdf")},
            data=data,
        )
        assert response.status_code == 422

    def test_build_lock_released(self, client, store, source_bytes):
        """Test the per-file build lock is dropped after success and failure."""
        response = client.post(
            "/api/v1/annotations/store",
            files={"file": ("essay.pdf", source_bytes, "application/pdf")},
            data=self.form(),
        )
        assert response.status_code == 200
        assert annotations_router._build_locks == {}

        store.max_bytes = 100
        response = client.post(
            "/api/v1/annotations/store",
            files={"file": ("essay.pdf", source_bytes, "application/pdf")},
            data=self.form(attempt_id="35"),
        )
        assert response.status_code == 413
        assert annotations_router._build_locks == {}


class TestBuildLocks:
    """Tests for the per-file build lock registry."""

    def test_distinct_keys_are_released(self):
        """Test every key leaves the registry once its holder exits."""
        for item_id in range(50):
            with annotations_router._locked((1, "question", "response_attachments", item_id, "/", "x.pdf")):
                assert len(annotations_router._build_locks) == 1

        assert annotations_router._build_locks == {}

    def test_released_on_error(self):
        """Test an exception inside the block still releases the entry."""
        with pytest.raises(RuntimeError):
            with annotations_router._locked(("k",)):
                raise RuntimeError("boom")

        assert annotations_router._build_locks == {}

    def test_second_holder_waits(self):
        """Test a second build of the same file waits for the first."""
        order = []

        def second():
            with annotations_router._locked(("same",)):
                order.append("second")

        with annotations_router._locked(("same",)):
            worker = threading.Thread(target=second)
            worker.start()
            worker.join(timeout=0.2)
            assert worker.is_alive()
            order.append("first")

        worker.join(timeout=5)
        assert order == ["first", "second"]
        assert annotations_router._build_locks == {}
