"""
Tests for object storage keys and presigning. The boto3 client is mocked.
"""

import pytest
from unittest.mock import Mock
from botocore.exceptions import ClientError

from syncscript.core.error_handlers import StorageError, StorageNotConfiguredError
from syncscript.services.storage_service import ObjectStorage, StorageConfig


class TestKeys:

    def test_new_key_is_unique_and_keeps_the_file_name(self):
        first = ObjectStorage.new_key("paper.txt")
        second = ObjectStorage.new_key("paper.txt")
        assert first != second
        assert first.startswith("uploads/")
        assert first.endswith("-paper.txt")

    def test_new_key_drops_directories(self):
        assert ObjectStorage.new_key("../../etc/passwd").endswith("-passwd")
        assert ObjectStorage.new_key("C:\\docs\\notes.txt").endswith("-notes.txt")

    def test_file_url_round_trips_to_key(self, storage):
        key = "uploads/1234-my notes.txt"
        url = storage.file_url(key)
        assert url == "https://syncscript-test.s3.us-east-1.amazonaws.com/uploads/1234-my%20notes.txt"
        assert storage.key_from_file_url(url) == key

    def test_path_style_endpoint(self):
        storage = ObjectStorage(StorageConfig(bucket="b", access_key="a", secret_key="s",
                                              endpoint_url="http://localhost:9000"))
        url = storage.file_url("uploads/x.txt")
        assert url == "http://localhost:9000/b/uploads/x.txt"
        assert storage.key_from_file_url(url) == "uploads/x.txt"

    @pytest.mark.parametrize("url", ["not a url", "ftp://bucket/key", "https://bucket.example/"])
    def test_invalid_file_urls(self, storage, url):
        assert storage.key_from_file_url(url) is None


class TestPresign:

    @pytest.mark.asyncio
    async def test_presign_put(self, storage, s3_client):
        url = await storage.presign_put("uploads/k.txt", "text/plain")

        assert url.startswith("https://signed.example/")
        s3_client.generate_presigned_url.assert_called_once_with(
            "put_object",
            Params={"Bucket": "syncscript-test", "Key": "uploads/k.txt", "ContentType": "text/plain"},
            ExpiresIn=3600,
        )

    @pytest.mark.asyncio
    async def test_presign_get(self, storage, s3_client):
        await storage.presign_get("uploads/k.txt")
        s3_client.generate_presigned_url.assert_called_once_with(
            "get_object", Params={"Bucket": "syncscript-test", "Key": "uploads/k.txt"}, ExpiresIn=3600
        )

    @pytest.mark.asyncio
    async def test_put(self, storage, s3_client):
        await storage.put("uploads/k.txt", b"hello", "text/plain")
        s3_client.put_object.assert_called_once_with(
            Bucket="syncscript-test", Key="uploads/k.txt", Body=b"hello", ContentType="text/plain"
        )

    @pytest.mark.asyncio
    async def test_not_configured(self):
        storage = ObjectStorage(StorageConfig(), client=Mock())
        assert not storage.configured
        with pytest.raises(StorageNotConfiguredError):
            await storage.presign_put("uploads/k.txt", "text/plain")

    @pytest.mark.asyncio
    async def test_backend_failure(self, storage, s3_client):
        s3_client.put_object.side_effect = ClientError({"Error": {"Code": "AccessDenied"}}, "PutObject")
        with pytest.raises(StorageError):
            await storage.put("uploads/k.txt", b"x", "text/plain")
