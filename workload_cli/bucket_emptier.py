# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Bucket Emptier Module

Deletes every object version and delete marker in an S3 bucket.
"""

import logging

import boto3
from botocore.exceptions import ClientError

from .errors import WorkloadCliError

logger = logging.getLogger(__name__)


class BucketEmptier:
    """Empties S3 buckets"""

    def __init__(self, session: boto3.Session):
        self.s3 = session.resource("s3")

    def empty_bucket(self, bucket_name: str) -> None:
        """
        Delete all objects and versions in a bucket

        A bucket that doesn't exist is already empty.

        Args:
            bucket_name: Name of the S3 bucket
        """
        bucket = self.s3.Bucket(bucket_name)

        try:
            responses = bucket.object_versions.all().delete()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "NoSuchBucket":
                logger.debug(f"Bucket {bucket_name} does not exist, nothing to empty")
                return
            raise

        errors = [err for resp in responses for err in resp.get("Errors", [])]
        if errors:
            first = errors[0]
            raise WorkloadCliError(
                f"delete {len(errors)} objects from bucket {bucket_name}: "
                f"{first.get('Key')}: {first.get('Message', first.get('Code'))}"
            )

        deleted = sum(len(resp.get("Deleted", [])) for resp in responses)
        logger.info(f"Emptied bucket {bucket_name} ({deleted} object versions)")
