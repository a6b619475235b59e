# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Configuration Module

Naming conventions, parameter paths and tunables shared by the CLI.
"""

import os

# Metadata store layout (SSM Parameter Store)
FMT_APP_PARAM_PATH = "/workload-cli/applications/{app}"
FMT_ENV_PARAM_PATH = "/workload-cli/applications/{app}/environments/{env}"
FMT_WORKLOAD_PARAM_PATH = "/workload-cli/applications/{app}/components/{name}"
FMT_ROOT_ENV_PARAM_PATH = "/workload-cli/applications/{app}/environments/"

# Resource naming
FMT_SERVICE_STACK_NAME = "{app}-{env}-{name}"
FMT_SERVICE_FAMILY = "{app}-{env}-{name}"
FMT_SERVICE_REPO_NAME = "{app}/{name}"
FMT_TASK_STACK_NAME = "task-{name}"
FMT_TASK_FAMILY = "task-{name}"
FMT_TASK_REPO_NAME = "task-{name}"

# Resource tags
APP_TAG_KEY = "workload-cli-application"
ENV_TAG_KEY = "workload-cli-environment"
SERVICE_TAG_KEY = "workload-cli-service"
# Tag carried by one-off tasks started through this CLI
TASK_TAG_KEY = "workload-cli-task"

# Stack output holding the artifact bucket of a one-off task
TASK_BUCKET_OUTPUT_KEY = "S3Bucket"

DEFAULT_CLUSTER = "default"
TASK_STOP_REASON = "Task stopped because the underlying CloudFormation stack was deleted."

# Session name used when assuming environment manager roles
ROLE_SESSION_NAME = "workload-cli-teardown"

# Stack deletion polling
STACK_POLL_SECONDS = float(os.environ.get("WORKLOAD_CLI_STACK_POLL_SECONDS", "10"))

# Application name fallback for the --app flag
APP_ENV_VAR = "WORKLOAD_CLI_APP"


def service_stack_name(app: str, env: str, name: str) -> str:
    return FMT_SERVICE_STACK_NAME.format(app=app, env=env, name=name)


def task_stack_name(name: str) -> str:
    return FMT_TASK_STACK_NAME.format(name=name)


def service_family(app: str, env: str, name: str) -> str:
    return FMT_SERVICE_FAMILY.format(app=app, env=env, name=name)


def task_family(name: str) -> str:
    return FMT_TASK_FAMILY.format(name=name)


def service_repo_name(app: str, name: str) -> str:
    return FMT_SERVICE_REPO_NAME.format(app=app, name=name)


def task_repo_name(name: str) -> str:
    return FMT_TASK_REPO_NAME.format(name=name)
