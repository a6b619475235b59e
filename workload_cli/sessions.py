# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Session Resolver Module

Produces credentialed boto3 sessions for environments and for resources that
aren't scoped to an environment.
"""

import logging
from typing import Optional

import boto3

from . import config
from .models import Environment

logger = logging.getLogger(__name__)


class SessionResolver:
    """Creates boto3 sessions for a single CLI invocation"""

    def __init__(self, profile: Optional[str] = None, region: Optional[str] = None):
        """
        Initialize session resolver

        Args:
            profile: AWS profile name (optional)
            region: Region of the default session (optional)
        """
        self.profile = profile
        self.region = region
        self._default: Optional[boto3.Session] = None

    def default(self) -> boto3.Session:
        """Session from the operator's own credentials"""
        if self._default is None:
            self._default = boto3.Session(
                profile_name=self.profile, region_name=self.region
            )
        return self._default

    def default_with_region(self, region: str) -> boto3.Session:
        """Operator credentials, pinned to a region"""
        return boto3.Session(profile_name=self.profile, region_name=region)

    def from_role(self, role_arn: str, region: str) -> boto3.Session:
        """
        Assume a role and return a session in the given region

        Args:
            role_arn: ARN of the role to assume
            region: Region for the returned session

        Returns:
            boto3 session with the role's temporary credentials
        """
        logger.debug(f"Assuming role {role_arn} in {region}")
        sts = self.default().client("sts", region_name=region)
        response = sts.assume_role(
            RoleArn=role_arn, RoleSessionName=config.ROLE_SESSION_NAME
        )
        credentials = response["Credentials"]
        return boto3.Session(
            aws_access_key_id=credentials["AccessKeyId"],
            aws_secret_access_key=credentials["SecretAccessKey"],
            aws_session_token=credentials["SessionToken"],
            region_name=region,
        )

    def for_environment(self, env: Environment) -> boto3.Session:
        """Session with the environment's manager role"""
        return self.from_role(env.manager_role_arn, env.region)
