# Overview: Pytest coverage for the Cloudinary document store wrapper.

import pytest
from cloudinary.exceptions import Error as CloudinaryError

from stockflow.services import storage_service
from stockflow.services.storage_service import (
    StorageError, delete_asset, extract_public_id, get_download_url, upload_bill, upload_file,
)


URL = "https://res.cloudinary.com/demo/raw/upload/v1700000000/stockflow_bills/bill_1700000000000.pdf"


@pytest.fixture
def cloudinary_configured(app, monkeypatch):
    monkeypatch.setitem(app.config, "CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setitem(app.config, "CLOUDINARY_API_KEY", "key")
    monkeypatch.setitem(app.config, "CLOUDINARY_API_SECRET", "secret")


class TestUrls:

    def test_download_url_injects_attachment_flag(self):
        assert get_download_url(URL) == (
            "https://res.cloudinary.com/demo/raw/upload/fl_attachment/v1700000000/stockflow_bills/bill_1700000000000.pdf"
        )

    def test_download_url_is_idempotent(self):
        once = get_download_url(URL)
        assert get_download_url(once) == once

    def test_download_url_passes_none_through(self):
        assert get_download_url(None) is None
        assert get_download_url("") is None

    def test_extract_public_id(self):
        assert extract_public_id(URL) == "stockflow_bills/bill_1700000000000"
        assert extract_public_id("https://example.com/not-cloudinary") is None
        assert extract_public_id(None) is None


class TestUpload:

    def test_upload_bill_sends_raw_asset(self, app, cloudinary_configured, monkeypatch):
        calls = []

        def _fake_upload(file, **options):
            calls.append((file.read(), options))
            return {"secure_url": URL, "public_id": "stockflow_bills/bill_1", "resource_type": "raw"}

        monkeypatch.setattr(storage_service.cloudinary.uploader, "upload", _fake_upload)

        result = upload_bill(b"%PDF-1.4 fake")

        assert result.secure_url == URL
        assert result.resource_type == "raw"
        data, options = calls[0]
        assert data == b"%PDF-1.4 fake"
        assert options["resource_type"] == "raw"
        assert options["folder"] == "stockflow_bills"
        assert options["public_id"].startswith("bill_")
        assert options["public_id"].endswith(".pdf")

    def test_sdk_error_becomes_storage_error(self, app, cloudinary_configured, monkeypatch):
        def _failing_upload(file, **options):
            raise CloudinaryError("Invalid API key")

        monkeypatch.setattr(storage_service.cloudinary.uploader, "upload", _failing_upload)

        with pytest.raises(StorageError, match="Invalid API key"):
            upload_bill(b"%PDF")

    def test_malformed_response_becomes_storage_error(self, app, cloudinary_configured, monkeypatch):
        monkeypatch.setattr(storage_service.cloudinary.uploader, "upload", lambda file, **options: {"error": "quota"})

        with pytest.raises(StorageError, match="Unexpected upload response"):
            upload_bill(b"%PDF")

    def test_unconfigured_store_fails(self, app):
        with pytest.raises(StorageError, match="CLOUDINARY_CLOUD_NAME"):
            upload_bill(b"%PDF")

    def test_empty_document_refused(self, app, cloudinary_configured):
        with pytest.raises(StorageError):
            upload_bill(b"")

    def test_upload_file_lets_cloudinary_detect_type(self, app, cloudinary_configured, monkeypatch):
        calls = []

        def _fake_upload(file, **options):
            calls.append((file, options))
            return {"secure_url": URL, "public_id": "stockflow_uploads/logo", "resource_type": "image"}

        monkeypatch.setattr(storage_service.cloudinary.uploader, "upload", _fake_upload)

        result = upload_file("/tmp/logo.png")

        assert result.resource_type == "image"
        assert calls[0] == ("/tmp/logo.png", {"folder": "stockflow_uploads", "resource_type": "auto"})


class TestDelete:

    @pytest.mark.parametrize("result,expected", [({"result": "ok"}, True), ({"result": "not found"}, False)])
    def test_delete_asset(self, app, cloudinary_configured, monkeypatch, result, expected):
        monkeypatch.setattr(storage_service.cloudinary.uploader, "destroy", lambda public_id, **kw: result)
        assert delete_asset("stockflow_bills/bill_1") is expected
