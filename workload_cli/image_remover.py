# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Image Remover Module

Deletes every image in an ECR repository.
"""

import logging

import boto3

from .errors import WorkloadCliError

logger = logging.getLogger(__name__)

# batch_delete_image accepts at most 100 image ids per call
BATCH_DELETE_LIMIT = 100


class ImageRemover:
    """Empties ECR repositories"""

    def __init__(self, session: boto3.Session):
        self.ecr = session.client("ecr")

    def clear_repository(self, repo_name: str) -> None:
        """
        Delete all images in a repository

        A repository that doesn't exist is already clear.

        Args:
            repo_name: Name of the ECR repository
        """
        try:
            image_ids = []
            paginator = self.ecr.get_paginator("list_images")
            for page in paginator.paginate(repositoryName=repo_name):
                image_ids.extend(page.get("imageIds", []))
        except self.ecr.exceptions.RepositoryNotFoundException:
            logger.debug(f"Repository {repo_name} does not exist, nothing to clear")
            return

        if not image_ids:
            logger.debug(f"Repository {repo_name} is already empty")
            return

        failures = []
        for i in range(0, len(image_ids), BATCH_DELETE_LIMIT):
            response = self.ecr.batch_delete_image(
                repositoryName=repo_name,
                imageIds=image_ids[i : i + BATCH_DELETE_LIMIT],
            )
            failures.extend(
                f for f in response.get("failures", [])
                if f.get("failureCode") != "ImageNotFound"
            )

        if failures:
            reasons = ", ".join(
                f.get("failureReason", f.get("failureCode", "unknown"))
                for f in failures
            )
            raise WorkloadCliError(
                f"delete {len(failures)} images from repository {repo_name}: {reasons}"
            )
        logger.info(f"Deleted {len(image_ids)} images from repository {repo_name}")
