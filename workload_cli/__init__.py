# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Workload CLI - Command-line interface for tearing down deployed workloads

This package provides CLI tools for:
- Stopping running tasks of services and one-off tasks
- Emptying image repositories and artifact buckets
- Deleting workload stacks across environments
- Keeping the workload catalog in sync
"""

__version__ = "1.0.0"
