# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Errors raised by the workload CLI.
"""

from typing import Optional


class WorkloadCliError(Exception):
    """Base class for workload CLI errors"""


class NoSuchApplicationError(WorkloadCliError):
    def __init__(self, app: str):
        self.app = app
        super().__init__(f"couldn't find an application named {app}")


class NoSuchEnvironmentError(WorkloadCliError):
    def __init__(self, app: str, env: str):
        self.app = app
        self.env = env
        super().__init__(
            f"couldn't find environment {env} in the application {app}"
        )


class NoSuchWorkloadError(WorkloadCliError):
    def __init__(self, app: str, name: str):
        self.app = app
        self.name = name
        super().__init__(f"couldn't find workload {name} in the application {app}")


class NoSuchTaskError(WorkloadCliError):
    def __init__(self, name: str, scope: str):
        self.name = name
        self.scope = scope
        super().__init__(f"couldn't find a service or task named {name} in {scope}")


class StackDeletionError(WorkloadCliError):
    """Stack reached DELETE_FAILED"""

    def __init__(self, stack_name: str, reason: str):
        self.stack_name = stack_name
        self.reason = reason
        super().__init__(f"stack {stack_name} did not delete: {reason}")


class TeardownError(WorkloadCliError):
    """
    A teardown step failed.

    Args:
        step: Step that failed (e.g. "stop tasks", "empty repository")
        context: Operator-facing description of the action, prefixed to the cause.
            None surfaces the cause text unchanged.
        cause: Underlying exception
        environment: Environment being processed, None for the default cluster
        workload: Workload name
    """

    def __init__(
        self,
        step: str,
        context: Optional[str],
        cause: BaseException,
        environment: Optional[str] = None,
        workload: str = "",
    ):
        self.step = step
        self.context = context
        self.cause = cause
        self.environment = environment
        self.workload = workload
        message = f"{context}: {cause}" if context else str(cause)
        super().__init__(message)
