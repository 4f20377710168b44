"""
Unit tests for the asset store client.
"""

import pytest

from slotcraft.assets import AssetStore
from slotcraft.layout.errors import PersistenceError

from conftest import StubResponse, StubSession

TARGET = {"uploadUrl": "https://upload.example.com/put/123", "fileUrl": "https://cdn.example.com/123.png"}


class TestAssetStore:
    """Tests for AssetStore uploads."""

    def test_upload_when_target_granted_then_put_and_file_url(self, png_bytes):
        session = StubSession([StubResponse(200, TARGET), StubResponse(200)])
        store = AssetStore("https://api.example.com/", api_token="t0k", session=session)

        file_url = store.upload(png_bytes, "red.png")

        assert file_url == "https://cdn.example.com/123.png"
        (post_method, post_url, post_kwargs), (put_method, put_url, put_kwargs) = session.calls
        assert (post_method, post_url) == ("POST", "https://api.example.com/uploads")
        assert post_kwargs["json"] == {"mimeType": "image/png", "fileName": "red.png"}
        assert (put_method, put_url) == ("PUT", TARGET["uploadUrl"])
        assert put_kwargs["data"] == png_bytes
        assert put_kwargs["headers"]["Content-Type"] == "image/png"
        assert session.headers["Authorization"] == "Bearer t0k"

    def test_upload_when_target_has_headers_then_sent_with_put(self, png_bytes):
        target = dict(TARGET, headers={"x-amz-acl": "public-read"})
        session = StubSession([StubResponse(200, target), StubResponse(200)])
        AssetStore("https://api.example.com", session=session).upload(png_bytes, "red.png")
        assert session.calls[1][2]["headers"]["x-amz-acl"] == "public-read"

    def test_target_when_response_incomplete_then_raises(self):
        session = StubSession([StubResponse(200, {"uploadUrl": "https://upload.example.com/x"})])
        with pytest.raises(PersistenceError, match="missing uploadUrl or fileUrl"):
            AssetStore("https://api.example.com", session=session).generate_upload_target("image/png", "a.png")

    def test_target_when_not_json_then_raises(self):
        session = StubSession([StubResponse(200)])
        with pytest.raises(PersistenceError, match="invalid JSON"):
            AssetStore("https://api.example.com", session=session).generate_upload_target("image/png", "a.png")

    def test_target_when_reply_is_list_then_raises(self):
        session = StubSession([StubResponse(200, [TARGET])])
        with pytest.raises(PersistenceError, match="unexpected list"):
            AssetStore("https://api.example.com", session=session).generate_upload_target("image/png", "a.png")

    def test_upload_when_put_rejected_then_status_kept(self, png_bytes):
        session = StubSession([StubResponse(200, TARGET), StubResponse(403)])
        with pytest.raises(PersistenceError) as excinfo:
            AssetStore("https://api.example.com", session=session).upload(png_bytes, "red.png")
        assert excinfo.value.status_code == 403

    def test_upload_file_when_exists_then_uses_file_name(self, tmp_path, png_bytes):
        path = tmp_path / "photo.jpg"
        path.write_bytes(png_bytes)
        session = StubSession([StubResponse(200, TARGET), StubResponse(200)])

        AssetStore("https://api.example.com", session=session).upload_file(path)
        assert session.calls[0][2]["json"] == {"mimeType": "image/jpeg", "fileName": "photo.jpg"}

    def test_upload_file_when_missing_then_raises(self, tmp_path):
        with pytest.raises(PersistenceError, match="Cannot read"):
            AssetStore("https://api.example.com", session=StubSession()).upload_file(tmp_path / "nope.png")
