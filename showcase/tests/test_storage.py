import datetime
import io
import unittest
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError

from showcase.errors import StorageError
from showcase.storage import InMemoryBlobStorageClient, S3BlobStorageClient


class InMemoryBlobStorageTests(unittest.TestCase):
    def setUp(self):
        self.storage = InMemoryBlobStorageClient()

    def test_put_list_fetch(self):
        info = self.storage.put("docs/a b.json", b"{}", "application/json")
        self.assertEqual(info.pathname, "docs/a b.json")
        self.assertEqual(info.size, 2)
        self.assertEqual(self.storage.fetch(info.url), b"{}")
        self.assertEqual(
            [blob.pathname for blob in self.storage.list(prefix="docs/")], ["docs/a b.json"]
        )
        self.assertEqual(self.storage.list(prefix="images/"), [])

    def test_put_overwrites_in_place(self):
        self.storage.put("doc.json", b"1")
        self.storage.put("doc.json", b"22")
        self.assertEqual(len(self.storage.list()), 1)
        self.assertEqual(self.storage.objects["doc.json"], b"22")

    def test_fetch_unknown_url(self):
        with self.assertRaises(StorageError):
            self.storage.fetch("https://example.test/blob/missing.json")
        with self.assertRaises(OSError):
            self.storage.fetch("https://elsewhere.test/doc.json")

    def test_copy_and_delete(self):
        self.storage.put("a.png", b"img", "image/png")
        copied = self.storage.copy("a.png", "b.png")
        self.assertEqual(copied.pathname, "b.png")
        self.assertEqual(self.storage.content_types["b.png"], "image/png")
        self.storage.delete(["a.png"])
        self.assertEqual([blob.pathname for blob in self.storage.list()], ["b.png"])
        with self.assertRaises(StorageError):
            self.storage.copy("a.png", "c.png")

    def test_reset(self):
        self.storage.put("a.png", b"img")
        self.storage.reset()
        self.assertEqual(self.storage.list(), [])


class S3BlobStorageTests(unittest.TestCase):
    def setUp(self):
        patcher = patch("showcase.storage.boto3.client")
        self.mock_client_factory = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = MagicMock()
        self.mock_client_factory.return_value = self.client
        self.storage = S3BlobStorageClient(
            bucket="showcase",
            region="auto",
            endpoint="https://s3.example.com",
            access_key_id="key",
            secret_access_key="secret",
        )

    def test_client_configuration(self):
        kwargs = self.mock_client_factory.call_args.kwargs
        self.assertEqual(kwargs["endpoint_url"], "https://s3.example.com")
        self.assertEqual(kwargs["region_name"], "auto")
        self.assertEqual(self.storage.public_base_url, "https://s3.example.com/showcase")

    def test_put_writes_object(self):
        info = self.storage.put("project-data.json", b"{}", "application/json")
        self.client.put_object.assert_called_once_with(
            Bucket="showcase",
            Key="project-data.json",
            Body=b"{}",
            ContentType="application/json",
        )
        self.assertEqual(info.url, "https://s3.example.com/showcase/project-data.json")

    def test_list_paginates(self):
        modified = datetime.datetime(2024, 1, 2, tzinfo=datetime.timezone.utc)
        paginator = MagicMock()
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "project-images/a.png", "Size": 3, "LastModified": modified}]},
            {"Contents": [{"Key": "project-images/b.png", "Size": 4}]},
            {},
        ]
        self.client.get_paginator.return_value = paginator

        blobs = self.storage.list(prefix="project-images/")
        paginator.paginate.assert_called_once_with(Bucket="showcase", Prefix="project-images/")
        self.assertEqual([blob.pathname for blob in blobs], ["project-images/a.png", "project-images/b.png"])
        self.assertEqual(blobs[0].uploaded_at, modified.isoformat())
        self.assertEqual(blobs[1].uploaded_at, "")

    def test_fetch_resolves_key_from_url(self):
        self.client.get_object.return_value = {"Body": io.BytesIO(b"data")}
        content = self.storage.fetch("https://s3.example.com/showcase/project-images/a%20b.png")
        self.assertEqual(content, b"data")
        self.client.get_object.assert_called_once_with(
            Bucket="showcase", Key="project-images/a b.png"
        )

    def test_client_errors_become_storage_errors(self):
        self.client.get_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject"
        )
        with self.assertRaises(StorageError):
            self.storage.fetch("https://s3.example.com/showcase/missing.json")

    def test_copy(self):
        self.client.head_object.return_value = {"ContentLength": 3}
        info = self.storage.copy("project-images/a.png", "project-images/b.png")
        self.client.copy_object.assert_called_once_with(
            Bucket="showcase",
            Key="project-images/b.png",
            CopySource={"Bucket": "showcase", "Key": "project-images/a.png"},
        )
        self.assertEqual(info.size, 3)

    def test_delete_reports_partial_failures(self):
        self.client.delete_objects.return_value = {"Errors": [{"Key": "a.png"}]}
        with self.assertRaises(StorageError):
            self.storage.delete(["a.png", "b.png"])

    def test_delete_nothing(self):
        self.storage.delete([])
        self.client.delete_objects.assert_not_called()


if __name__ == "__main__":
    unittest.main()
