"""Tests for R2 storage client."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from worship_chords.services.r2 import R2Client, StorageError, safe_title


@pytest.fixture
def r2_env(monkeypatch):
    """Set both required R2 credential environment variables."""
    monkeypatch.setenv("WC_R2_ACCESS_KEY_ID", "test-access-key")
    monkeypatch.setenv("WC_R2_SECRET_ACCESS_KEY", "test-secret-key")


@pytest.fixture
def r2_client(r2_env):
    """R2Client backed by a mock boto3 client."""
    with patch("worship_chords.services.r2.boto3.client") as mock_boto_client:
        mock_boto_client.return_value = MagicMock()
        client = R2Client(bucket="test-bucket", endpoint_url="https://r2.example.com")
        yield client


def client_error(operation):
    return ClientError({"Error": {"Code": "500", "Message": "boom"}}, operation)


class TestR2ClientInit:
    """Tests for R2Client construction."""

    @patch("worship_chords.services.r2.boto3.client")
    def test_creates_s3_client_with_credentials(self, mock_boto_client, r2_env):
        """boto3.client is called with the correct parameters."""
        R2Client(bucket="test-bucket", endpoint_url="https://test.r2.cloudflarestorage.com")

        mock_boto_client.assert_called_once_with(
            "s3",
            endpoint_url="https://test.r2.cloudflarestorage.com",
            aws_access_key_id="test-access-key",
            aws_secret_access_key="test-secret-key",
            region_name="auto",
        )

    @patch("worship_chords.services.r2.boto3.client")
    def test_public_url_defaults_to_endpoint_and_bucket(self, mock_boto_client, r2_env):
        client = R2Client(bucket="b", endpoint_url="https://r2.example.com/")
        assert client.public_url == "https://r2.example.com/b"

        custom = R2Client(bucket="b", endpoint_url="https://r2.example.com", public_url="https://cdn.example.com/")
        assert custom.url_for("vocals/x.wav") == "https://cdn.example.com/vocals/x.wav"

    def test_missing_credentials_raise(self, monkeypatch):
        """Raises ValueError when a credential is unset."""
        monkeypatch.delenv("WC_R2_ACCESS_KEY_ID", raising=False)
        monkeypatch.setenv("WC_R2_SECRET_ACCESS_KEY", "secret")

        with pytest.raises(ValueError, match="R2 credentials not set"):
            R2Client(bucket="b", endpoint_url="http://localhost")


class TestR2Operations:
    """Tests for uploads, deletes and key helpers."""

    def test_upload_bytes(self, r2_client):
        url = r2_client.upload_bytes(b"RIFF", "vocals/1-song-vocals.wav", "audio/wav")

        r2_client._client.put_object.assert_called_once_with(
            Bucket="test-bucket",
            Key="vocals/1-song-vocals.wav",
            Body=b"RIFF",
            ContentType="audio/wav",
        )
        assert url == "https://r2.example.com/test-bucket/vocals/1-song-vocals.wav"

    def test_upload_failure(self, r2_client):
        r2_client._client.put_object.side_effect = client_error("PutObject")
        with pytest.raises(StorageError, match="Upload of k failed"):
            r2_client.upload_bytes(b"x", "k", "audio/wav")

    def test_delete_by_url(self, r2_client):
        r2_client.delete_by_url("https://r2.example.com/test-bucket/vocals/a.wav")
        r2_client._client.delete_object.assert_called_once_with(Bucket="test-bucket", Key="vocals/a.wav")

    def test_delete_failure(self, r2_client):
        r2_client._client.delete_object.side_effect = client_error("DeleteObject")
        with pytest.raises(StorageError):
            r2_client.delete_by_url("s3://test-bucket/vocals/a.wav")

    @pytest.mark.parametrize(
        "url,key",
        [
            ("https://r2.example.com/test-bucket/vocals/a.wav", "vocals/a.wav"),
            ("s3://test-bucket/vocals/b.wav", "vocals/b.wav"),
            ("https://elsewhere.example.com/vocals/c.wav", "vocals/c.wav"),
        ],
    )
    def test_key_from_url(self, r2_client, url, key):
        assert r2_client.key_from_url(url) == key

    def test_file_exists(self, r2_client):
        assert r2_client.file_exists("vocals/a.wav") is True
        r2_client._client.head_object.side_effect = client_error("HeadObject")
        assert r2_client.file_exists("vocals/a.wav") is False

    def test_vocals_key(self):
        key = R2Client.vocals_key("Amazing Grace!", ".mp3", timestamp_ms=1700000000000)
        assert key == "vocals/1700000000000-amazing_grace_-vocals.mp3"

    def test_safe_title(self):
        assert safe_title("10,000 Reasons") == "10_000_reasons"

    def test_parse_s3_url(self):
        assert R2Client.parse_s3_url("s3://bucket/a/b.wav") == ("bucket", "a/b.wav")
        with pytest.raises(ValueError, match="Not an S3 URL"):
            R2Client.parse_s3_url("https://bucket/a")
