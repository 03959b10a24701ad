"""Unit tests for the attachment file stores."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from chat_engine.core.storage import (
    LocalFileStore,
    S3FileStore,
    generate_unique_filename,
    get_file_store,
)


class TestLocalFileStore:
    @pytest.fixture
    def store(self, tmp_path):
        return LocalFileStore(str(tmp_path), "http://cdn.test/files/")

    def test_store_url_exists_delete(self, store, tmp_path):
        path = store.store(b"content", "chat/a.txt")

        assert path == "chat/a.txt"
        assert (tmp_path / "chat" / "a.txt").read_bytes() == b"content"
        assert store.url(path) == "http://cdn.test/files/chat/a.txt"
        assert store.exists(path)
        assert store.delete(path) is True
        assert not store.exists(path)

    def test_delete_missing_file(self, store):
        assert store.delete("nothing/here.txt") is False

    @pytest.mark.parametrize("path", ["../escape.txt", "chat/../../escape.txt"])
    def test_rejects_path_traversal(self, store, path):
        with pytest.raises(ValueError, match="Path traversal"):
            store.store(b"x", path)


class TestS3FileStore:
    @pytest.fixture
    def s3_client(self):
        with patch("chat_engine.core.storage.boto3") as mock_boto3:
            client = MagicMock()
            mock_boto3.client.return_value = client
            yield client

    def test_store_puts_object(self, s3_client, make_settings):
        store = S3FileStore(make_settings(STORAGE_BACKEND="s3", S3_BUCKET_NAME="bucket"))

        assert store.store(b"data", "chat/a.png") == "chat/a.png"
        s3_client.put_object.assert_called_once_with(
            Bucket="bucket", Key="chat/a.png", Body=b"data"
        )

    def test_public_url(self, s3_client, make_settings):
        store = S3FileStore(make_settings(S3_PUBLIC_URL="https://files.test/"))
        assert store.url("chat/a.png") == "https://files.test/chat/a.png"
        s3_client.generate_presigned_url.assert_not_called()

    def test_presigned_url_without_public_url(self, s3_client, make_settings):
        s3_client.generate_presigned_url.return_value = "https://signed"
        store = S3FileStore(make_settings())

        assert store.url("chat/a.png") == "https://signed"

    def test_delete_missing_object(self, s3_client, make_settings):
        s3_client.head_object.side_effect = ClientError(
            {"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject"
        )
        store = S3FileStore(make_settings())

        assert store.delete("chat/gone.png") is False
        s3_client.delete_object.assert_not_called()

    def test_delete_existing_object(self, s3_client, make_settings):
        store = S3FileStore(make_settings(S3_BUCKET_NAME="bucket"))

        assert store.delete("chat/a.png") is True
        s3_client.delete_object.assert_called_once_with(Bucket="bucket", Key="chat/a.png")


class TestHelpers:
    def test_get_file_store_defaults_to_local(self, settings):
        assert isinstance(get_file_store(settings), LocalFileStore)

    def test_get_file_store_s3(self, make_settings):
        with patch("chat_engine.core.storage.boto3"):
            assert isinstance(get_file_store(make_settings(STORAGE_BACKEND="s3")), S3FileStore)

    def test_unique_filename_keeps_extension(self):
        first = generate_unique_filename("photo.JPG")
        assert first.endswith(".JPG")
        assert first != generate_unique_filename("photo.JPG")
