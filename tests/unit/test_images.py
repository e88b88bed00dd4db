"""
Unit Tests - Image Store Client
"""
import hashlib
from urllib.parse import parse_qs

import httpx
import pytest

from pcstore.integrations.images import CloudinaryClient, extract_asset_id
from pcstore.services.errors import AssetDeletionFailed, UploadFailed


def make_client(handler, **kwargs) -> CloudinaryClient:
    base_url = "https://api.cloudinary.com/v1_1/demo"
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=base_url)
    return CloudinaryClient(
        cloud_name="demo",
        api_key="key-123",
        api_secret="secret-xyz",
        upload_preset=kwargs.pop("upload_preset", "pc-store-upload"),
        default_folder=kwargs.pop("default_folder", "pc-store/categories"),
        client=http,
        **kwargs,
    )


def form_of(request: httpx.Request) -> dict:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


class TestExtractAssetId:
    """Tests for extract_asset_id"""

    def test_versioned_url(self):
        """Test version prefix and extension are stripped"""
        url = "https://res.cloudinary.com/demo/image/upload/v1700000000/folder/pic.jpg"
        assert extract_asset_id(url) == "folder/pic"

    def test_unversioned_url(self):
        """Test URL without a version segment"""
        url = "https://res.cloudinary.com/demo/image/upload/pc-store/categories/gpu.webp"
        assert extract_asset_id(url) == "pc-store/categories/gpu"

    def test_query_string_ignored(self):
        """Test query parameters are not part of the id"""
        url = "https://res.cloudinary.com/demo/image/upload/v12/pic.png?x=1"
        assert extract_asset_id(url) == "pic"

    def test_url_without_upload_segment(self):
        """Test malformed URL yields None"""
        assert extract_asset_id("https://example.com/images/pic.jpg") is None

    def test_client_exposes_extractor(self):
        """Test the client offers the same extraction"""
        url = "https://res.cloudinary.com/demo/image/upload/v1/a/b.jpg"
        assert CloudinaryClient.extract_asset_id(url) == "a/b"


class TestDeleteAsset:
    """Tests for CloudinaryClient.delete_asset"""

    async def test_ok_result(self):
        """Test successful destroy is signed and returns ok"""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"result": "ok"})

        client = make_client(handler)
        assert await client.delete_asset("folder/pic") == "ok"

        request = seen[0]
        assert request.url.path == "/v1_1/demo/image/destroy"
        form = form_of(request)
        assert form["public_id"] == "folder/pic"
        assert form["api_key"] == "key-123"
        payload = f"public_id=folder/pic&timestamp={form['timestamp']}secret-xyz"
        assert form["signature"] == hashlib.sha1(payload.encode()).hexdigest()

    async def test_not_found_counts_as_deleted(self):
        """Test repeating a delete is harmless"""
        client = make_client(lambda request: httpx.Response(200, json={"result": "not found"}))
        assert await client.delete_asset("folder/pic") == "not found"

    async def test_unexpected_result(self):
        """Test any other result raises with the result attached"""
        client = make_client(lambda request: httpx.Response(200, json={"result": "error"}))

        with pytest.raises(AssetDeletionFailed) as exc_info:
            await client.delete_asset("folder/pic")

        assert exc_info.value.result == "error"

    async def test_http_error(self):
        """Test error status raises AssetDeletionFailed"""
        client = make_client(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(AssetDeletionFailed):
            await client.delete_asset("folder/pic")

    async def test_timeout(self):
        """Test timeout raises AssetDeletionFailed"""
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)
        with pytest.raises(AssetDeletionFailed):
            await client.delete_asset("folder/pic")

    async def test_delete_by_url(self):
        """Test URL is resolved to its asset id"""
        seen = []

        def handler(request):
            seen.append(form_of(request)["public_id"])
            return httpx.Response(200, json={"result": "ok"})

        client = make_client(handler)
        url = "https://res.cloudinary.com/demo/image/upload/v99/pc-store/products/gpu.jpg"

        assert await client.delete_asset_by_url(url) == "ok"
        assert seen == ["pc-store/products/gpu"]

    async def test_delete_by_malformed_url_is_noop(self):
        """Test no request is made for a URL without an asset id"""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"result": "ok"})

        client = make_client(handler)
        assert await client.delete_asset_by_url("https://example.com/pic.jpg") is None
        assert seen == []


class TestUploadAsset:
    """Tests for CloudinaryClient.upload_asset"""

    UPLOADED = {
        "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/pc-store/categories/gpu.png",
        "public_id": "pc-store/categories/gpu",
        "width": 800,
        "height": 600,
        "format": "png",
    }

    async def test_unsigned_upload(self):
        """Test first attempt succeeds without a preset"""
        bodies = []

        def handler(request):
            bodies.append(request.content)
            return httpx.Response(200, json=self.UPLOADED)

        client = make_client(handler)
        result = await client.upload_asset(("gpu.png", b"\x89PNG", "image/png"))

        assert result.secure_url == self.UPLOADED["secure_url"]
        assert result.asset_id == "pc-store/categories/gpu"
        assert result.width == 800
        assert len(bodies) == 1
        assert b"upload_preset" not in bodies[0]
        assert b"pc-store/categories" in bodies[0]

    async def test_falls_back_to_preset(self):
        """Test preset upload follows a rejected unsigned upload"""
        bodies = []

        def handler(request):
            bodies.append(request.content)
            if b"upload_preset" not in request.content:
                return httpx.Response(400, json={"error": {"message": "Upload preset must be specified"}})
            return httpx.Response(200, json=self.UPLOADED)

        client = make_client(handler)
        result = await client.upload_asset(b"\x89PNG", folder="pc-store/products")

        assert result.asset_id == "pc-store/categories/gpu"
        assert len(bodies) == 2
        assert b"pc-store-upload" in bodies[1]
        assert b"pc-store/products" in bodies[1]

    async def test_both_attempts_fail(self):
        """Test error names both failures"""
        def handler(request):
            if b"upload_preset" not in request.content:
                return httpx.Response(400, json={"error": {"message": "Upload preset must be specified"}})
            return httpx.Response(400, json={"error": {"message": "Upload preset not found"}})

        client = make_client(handler)
        with pytest.raises(UploadFailed) as exc_info:
            await client.upload_asset(b"\x89PNG")

        message = str(exc_info.value)
        assert "Upload preset must be specified" in message
        assert "preset pc-store-upload" in message
        assert "Upload preset not found" in message

    @pytest.mark.parametrize(
        "bad_response",
        [
            httpx.Response(200, json={"public_id": "pc-store/categories/gpu"}),
            httpx.Response(200, text="<html>gateway</html>"),
            httpx.Response(200, json=["unexpected"]),
        ],
    )
    async def test_unreadable_success_falls_back(self, bad_response):
        """Test a 2xx body without the upload fields triggers the preset attempt"""
        bodies = []

        def handler(request):
            bodies.append(request.content)
            if b"upload_preset" not in request.content:
                return bad_response
            return httpx.Response(200, json=self.UPLOADED)

        client = make_client(handler)
        result = await client.upload_asset(b"\x89PNG")

        assert result.asset_id == "pc-store/categories/gpu"
        assert len(bodies) == 2

    async def test_unreadable_success_twice(self):
        """Test unreadable bodies on both attempts raise UploadFailed"""
        client = make_client(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(UploadFailed) as exc_info:
            await client.upload_asset(b"\x89PNG")

        assert "unreadable upload response" in str(exc_info.value)

    async def test_no_preset_configured(self):
        """Test a rejected unsigned upload fails outright without a preset"""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"error": {"message": "Unknown API key"}})

        client = make_client(handler, upload_preset=None)
        with pytest.raises(UploadFailed):
            await client.upload_asset(b"\x89PNG")

        assert len(calls) == 1
