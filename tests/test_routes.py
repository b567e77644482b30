"""Integration tests for the resize HTTP endpoints."""

import base64
import zipfile
from io import BytesIO

import pytest
from conftest import encode_image, open_image
from fastapi.testclient import TestClient

from batch_resize.app import create_app
from batch_resize.codecs.pillow_codec import PillowCodec
from batch_resize.common.config import ResizerConfig

pytestmark = pytest.mark.integration


def _png(name: str = "photo.png", width: int = 160, height: int = 90):
    return ("files", (name, encode_image(width, height), "image/png"))


@pytest.fixture
def small_limits_client() -> TestClient:
    config = ResizerConfig(max_files=2, max_file_size=2_000)
    return TestClient(create_app(config=config, codec=PillowCodec()))


# ============================================================================
# Successful requests
# ============================================================================


class TestResizeEndpoint:
    def test_zip_download(self, api_client: TestClient) -> None:
        """Test a width-only resize packaged as a ZIP."""
        response = api_client.post(
            "/api/resize",
            data={"width": "800", "allowEnlarge": "false"},
            files=[_png("photo.png", 1600, 900)],
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert response.headers["content-disposition"] == 'attachment; filename="images_800xauto.zip"'
        with zipfile.ZipFile(BytesIO(response.content)) as archive:
            assert archive.namelist() == ["photo_800x450.png"]
            assert open_image(archive.read("photo_800x450.png")).size == (800, 450)

    def test_json_download(self, api_client: TestClient) -> None:
        response = api_client.post(
            "/api/resize",
            data={"width": "64", "height": "64", "mode": "cover", "format": "jpeg", "download": "json"},
            files=[_png("a.png"), _png("b.png")],
        )

        assert response.status_code == 200
        items = response.json()["items"]
        assert [item["filename"] for item in items] == ["a_64x64.jpg", "b_64x64.jpg"]
        prefix = "data:image/jpeg;base64,"
        assert items[0]["mime"] == "image/jpeg"
        assert items[0]["dataUrl"].startswith(prefix)
        decoded = base64.b64decode(items[0]["dataUrl"][len(prefix) :])
        assert open_image(decoded).size == (64, 64)

    def test_empty_height_is_width_only(self, api_client: TestClient) -> None:
        response = api_client.post(
            "/api/resize",
            data={"width": "80", "height": "", "mode": "fill", "download": "json"},
            files=[_png()],
        )

        assert response.status_code == 200
        assert response.json()["items"][0]["filename"] == "photo_80x45.png"

    @pytest.mark.parametrize("flag,expected", [("TRUE", "photo_320x180.png"), ("yes", "photo_160x90.png")])
    def test_allow_enlarge_requires_true(self, api_client: TestClient, flag: str, expected: str) -> None:
        response = api_client.post(
            "/api/resize",
            data={"width": "320", "allowEnlarge": flag, "download": "json"},
            files=[_png()],
        )

        assert response.status_code == 200
        assert response.json()["items"][0]["filename"] == expected

    def test_health(self, api_client: TestClient) -> None:
        response = api_client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["codec"] == "pillow"
        assert "image/png" in body["output_formats"]


# ============================================================================
# Validation and failures
# ============================================================================


class TestResizeErrors:
    def test_reports_every_invalid_field(self, api_client: TestClient) -> None:
        response = api_client.post(
            "/api/resize",
            data={"width": "0", "qualityScale": "9", "mode": "stretch"},
            files=[_png()],
        )

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation error"
        assert {"width", "qualityScale", "mode"} <= set(body["fieldErrors"])
        assert all(issue["path"] for issue in body["issues"])

    def test_missing_width_and_files(self, api_client: TestClient) -> None:
        response = api_client.post("/api/resize", data={"mode": "pad"})

        assert response.status_code == 400
        field_errors = response.json()["fieldErrors"]
        assert "width" in field_errors
        assert field_errors["files"] == ["No images received. Please attach at least one file."]

    def test_too_many_files(self, small_limits_client: TestClient) -> None:
        response = small_limits_client.post(
            "/api/resize",
            data={"width": "10"},
            files=[_png("a.png", 8, 8), _png("b.png", 8, 8), _png("c.png", 8, 8)],
        )

        assert response.status_code == 400
        assert response.json()["fieldErrors"]["files"] == ["Too many files. Max is 2 per batch."]

    def test_file_too_large(self, small_limits_client: TestClient) -> None:
        big = ("files", ("big.bmp", b"\x00" * 3_000, "image/jpeg"))

        response = small_limits_client.post("/api/resize", data={"width": "10"}, files=[big])

        assert response.status_code == 400
        [message] = response.json()["fieldErrors"]["files.0"]
        assert message.startswith("File too large: big.bmp. Max is ")

    def test_unsupported_type(self, api_client: TestClient) -> None:
        response = api_client.post(
            "/api/resize",
            data={"width": "10"},
            files=[("files", ("notes.txt", b"hello", "text/plain"))],
        )

        assert response.status_code == 400
        assert response.json()["fieldErrors"]["files.0"] == ["Unsupported file type: text/plain (notes.txt)"]

    def test_decode_failure_is_422(self, api_client: TestClient) -> None:
        response = api_client.post(
            "/api/resize",
            data={"width": "10"},
            files=[_png("good.png"), ("files", ("bad.png", b"not really a png", "image/png"))],
        )

        assert response.status_code == 422
        body = response.json()
        assert body["file"] == "bad.png"
        assert body["stage"] == "decode"
        assert body["message"] == "Failed to resize images."
