# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Stack Manager Module

Looks up and deletes the CloudFormation stacks of workloads. A stack that no
longer exists is reported as not found on lookup and treated as deleted on
delete, so that teardown can be re-run after a partial failure.
"""

import logging
import time
from typing import Dict, Optional

import boto3

from . import config
from .errors import StackDeletionError
from .models import DeleteWorkloadInput, StackInfo, StackLookup

logger = logging.getLogger(__name__)


class StackManager:
    """Manages workload CloudFormation stacks in one account and region"""

    def __init__(self, session: boto3.Session, poll_interval: Optional[float] = None):
        """
        Initialize stack manager

        Args:
            session: boto3 session for the stack's account and region
            poll_interval: Seconds between status checks while deleting
        """
        self.cfn = session.client("cloudformation")
        self.poll_interval = (
            config.STACK_POLL_SECONDS if poll_interval is None else poll_interval
        )

    def lookup_task_stack(self, name: str) -> StackLookup:
        """
        Look up the stack of a one-off task

        Args:
            name: Task name

        Returns:
            StackLookup with the stack's owner, role and artifact bucket
        """
        return self._lookup(config.task_stack_name(name))

    def lookup_service_stack(self, app: str, env: str, name: str) -> StackLookup:
        """Look up the stack of a service in an environment"""
        return self._lookup(config.service_stack_name(app, env, name))

    def delete_task(self, info: StackInfo) -> None:
        """Delete a one-off task stack and wait until it is gone"""
        self._delete_stack(info.stack_name, info.role_arn)

    def delete_workload(self, workload: DeleteWorkloadInput) -> None:
        """Delete a service stack and wait until it is gone"""
        stack_name = config.service_stack_name(workload.app, workload.env, workload.name)
        self._delete_stack(stack_name, workload.role_arn)

    def _lookup(self, stack_name: str) -> StackLookup:
        stack = self._describe_stack(stack_name)
        if stack is None:
            logger.debug(f"Stack {stack_name} not found")
            return StackLookup.not_found()

        tags = {t.get("Key"): t.get("Value") for t in stack.get("Tags", [])}
        outputs = _outputs(stack)
        info = StackInfo(
            stack_name=stack_name,
            app=tags.get(config.APP_TAG_KEY, ""),
            env=tags.get(config.ENV_TAG_KEY, ""),
            role_arn=stack.get("RoleARN", ""),
            bucket_name=outputs.get(config.TASK_BUCKET_OUTPUT_KEY, ""),
        )
        return StackLookup.found(info)

    def _describe_stack(self, stack_name: str) -> Optional[Dict]:
        """Describe a stack, None if it doesn't exist"""
        try:
            response = self.cfn.describe_stacks(StackName=stack_name)
        except self.cfn.exceptions.ClientError as e:
            if "does not exist" in str(e):
                return None
            raise

        stacks = response.get("Stacks", [])
        if not stacks or stacks[0].get("StackStatus") == "DELETE_COMPLETE":
            return None
        return stacks[0]

    def _delete_stack(self, stack_name: str, role_arn: str = "") -> None:
        params = {"StackName": stack_name}
        if role_arn:
            params["RoleARN"] = role_arn

        try:
            self.cfn.delete_stack(**params)
        except self.cfn.exceptions.ClientError as e:
            if "does not exist" in str(e):
                logger.info(f"Stack {stack_name} already deleted")
                return
            raise

        logger.info(f"Stack deletion initiated: {stack_name}")
        self._wait_for_deletion(stack_name)

    def _wait_for_deletion(self, stack_name: str) -> None:
        """Poll until the stack is gone, raise if deletion fails"""
        while True:
            stack = self._describe_stack(stack_name)
            if stack is None:
                logger.info(f"Stack deleted: {stack_name}")
                return

            status = stack.get("StackStatus", "")
            logger.debug(f"Stack {stack_name} status: {status}")
            if status == "DELETE_FAILED":
                raise StackDeletionError(stack_name, self._deletion_failure(stack_name))

            time.sleep(self.poll_interval)

    def _deletion_failure(self, stack_name: str) -> str:
        """Describe the newest resource that failed to delete"""
        try:
            response = self.cfn.describe_stack_events(StackName=stack_name)
        except self.cfn.exceptions.ClientError as e:
            return f"stack events unavailable ({e})"

        for event in response.get("StackEvents", []):
            if event.get("ResourceStatus") == "DELETE_FAILED":
                resource = event.get("LogicalResourceId", stack_name)
                reason = event.get("ResourceStatusReason", "no reason given")
                return f"{resource}: {reason}"
        return "no resource reported a deletion failure"


def _outputs(stack: Dict) -> Dict[str, str]:
    return {
        output["OutputKey"]: output.get("OutputValue", "")
        for output in stack.get("Outputs", [])
    }
