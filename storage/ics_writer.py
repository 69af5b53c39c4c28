"""Writers delivering exported iCalendar bytes to local files or S3."""
import logging
import os
from typing import Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from processor.exceptions import ExportError

logger = logging.getLogger(__name__)

S3_SCHEME = 's3://'
ICS_CONTENT_TYPE = 'text/calendar; charset=utf-8'


class LocalFileWriter:
    """Writer for the local file system."""

    def write(self, location: str, data: bytes) -> str:
        """
        Write data to a file, creating or truncating it.

        Args:
            location: Destination file path
            data: Encoded iCalendar document

        Returns:
            The absolute path written

        Raises:
            ExportError: If the file cannot be written
        """
        path = os.path.abspath(os.path.expanduser(location))

        try:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, 'wb') as ics_file:
                ics_file.write(data)
        except OSError as e:
            logger.error(f"Error writing iCal file {path}: {e}")
            raise ExportError(path, str(e)) from e

        logger.info(f"Wrote {len(data)} bytes to {path}")
        return path


class S3Writer:
    """Writer for Amazon S3 objects addressed as s3://bucket/key."""

    def __init__(self, s3_client=None):
        """
        Initialize the writer.

        Args:
            s3_client: boto3 S3 client; created on first use when omitted
        """
        self._s3_client = s3_client

    @property
    def s3_client(self):
        if self._s3_client is None:
            self._s3_client = boto3.client('s3')
        return self._s3_client

    def write(self, location: str, data: bytes) -> str:
        """
        Upload data as a single S3 object.

        Args:
            location: ``s3://bucket/key`` URI
            data: Encoded iCalendar document

        Returns:
            The S3 URI written

        Raises:
            ExportError: If the URI is malformed or the upload fails
        """
        bucket, key = parse_s3_uri(location)

        try:
            self.s3_client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=ICS_CONTENT_TYPE
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading iCal to {location}: {e}")
            raise ExportError(location, str(e)) from e

        logger.info(f"Uploaded {len(data)} bytes to {location}")
        return location


def parse_s3_uri(location: str) -> Tuple[str, str]:
    """
    Split an ``s3://bucket/key`` URI.

    Raises:
        ExportError: If the bucket or key is missing
    """
    if not location.startswith(S3_SCHEME):
        raise ExportError(location, 'not an s3:// URI')

    bucket, _, key = location[len(S3_SCHEME):].partition('/')
    if not bucket or not key:
        raise ExportError(location, 'S3 URI must name both bucket and key')
    return bucket, key


def join_location(directory: str, file_name: str) -> str:
    """Join an output directory (local or s3://) with a file name."""
    if directory.startswith(S3_SCHEME):
        return f"{directory.rstrip('/')}/{file_name}"
    return os.path.join(directory, file_name)


def writer_for(location: str):
    """Pick the writer matching the location's scheme."""
    if location.startswith(S3_SCHEME):
        return S3Writer()
    return LocalFileWriter()
