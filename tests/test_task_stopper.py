# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Tests for task_stopper module
"""

from unittest.mock import Mock, call

import boto3
import pytest

from workload_cli.task_stopper import TaskStopper

CLUSTER_ARN = "arn:aws:ecs:us-west-2:123456789012:cluster/app-test-Cluster"
SERVICE_ARN = "arn:aws:ecs:us-west-2:123456789012:service/app-test-Cluster/app-test-backend"
STOP_REASON = "Task stopped because the underlying CloudFormation stack was deleted."


def cli_task(arn):
    return {"taskArn": arn, "tags": [{"key": "workload-cli-task", "value": "hide-snacks"}]}


class TestTaskStopper:
    """Tests for TaskStopper class"""

    @pytest.fixture
    def mock_ecs(self):
        """Mock ECS client with real modeled exceptions"""
        ecs = Mock()
        ecs.exceptions = boto3.client("ecs", region_name="us-west-2").exceptions
        return ecs

    @pytest.fixture
    def paginators(self, mock_ecs):
        paginators = {
            "list_clusters": Mock(),
            "list_services": Mock(),
            "list_tasks": Mock(),
        }
        paginators["list_clusters"].paginate.return_value = [
            {"clusterArns": ["arn:aws:ecs:us-west-2:123456789012:cluster/other"]},
            {"clusterArns": [CLUSTER_ARN]},
        ]
        paginators["list_services"].paginate.return_value = [
            {"serviceArns": [SERVICE_ARN]}
        ]
        paginators["list_tasks"].paginate.return_value = [
            {"taskArns": ["arn:task/1", "arn:task/2"]},
            {"taskArns": ["arn:task/3"]},
        ]
        mock_ecs.get_paginator.side_effect = lambda op: paginators[op]
        mock_ecs.describe_clusters.return_value = {
            "clusters": [
                {
                    "clusterArn": "arn:aws:ecs:us-west-2:123456789012:cluster/other",
                    "tags": [{"key": "workload-cli-application", "value": "other"}],
                },
                {
                    "clusterArn": CLUSTER_ARN,
                    "tags": [
                        {"key": "workload-cli-application", "value": "app"},
                        {"key": "workload-cli-environment", "value": "test"},
                    ],
                },
            ]
        }
        mock_ecs.describe_services.return_value = {
            "services": [
                {
                    "serviceArn": SERVICE_ARN,
                    "status": "ACTIVE",
                    "tags": [
                        {"key": "workload-cli-application", "value": "app"},
                        {"key": "workload-cli-environment", "value": "test"},
                        {"key": "workload-cli-service", "value": "backend"},
                    ],
                }
            ]
        }
        mock_ecs.describe_tasks.return_value = {
            "tasks": [cli_task("arn:task/1"), cli_task("arn:task/2"), cli_task("arn:task/3")]
        }
        return paginators

    @pytest.fixture
    def stopper(self, mock_ecs):
        session = Mock()
        session.client.return_value = mock_ecs
        return TaskStopper(session)

    def test_cluster_arn_by_tags(self, stopper, paginators, mock_ecs):
        assert stopper.cluster_arn("app", "test") == CLUSTER_ARN
        assert stopper.cluster_arn("app", "prod") is None
        _, kwargs = mock_ecs.describe_clusters.call_args
        assert kwargs["include"] == ["TAGS"]

    def test_stop_one_off_tasks(self, stopper, paginators, mock_ecs):
        """Test all running CLI tasks of the family are stopped"""
        stopper.stop_one_off_tasks("app", "test", "hide-snacks")

        paginators["list_tasks"].paginate.assert_called_once_with(
            cluster=CLUSTER_ARN, family="task-hide-snacks", desiredStatus="RUNNING"
        )
        mock_ecs.describe_tasks.assert_called_once_with(
            cluster=CLUSTER_ARN,
            tasks=["arn:task/1", "arn:task/2", "arn:task/3"],
            include=["TAGS"],
        )
        assert mock_ecs.stop_task.call_count == 3
        assert mock_ecs.stop_task.call_args_list[0] == call(
            cluster=CLUSTER_ARN, task="arn:task/1", reason=STOP_REASON
        )

    def test_untagged_tasks_in_family_are_left_running(self, stopper, paginators, mock_ecs):
        """Test tasks in the family that this CLI didn't start are not stopped"""
        mock_ecs.describe_tasks.return_value = {
            "tasks": [
                cli_task("arn:task/1"),
                {"taskArn": "arn:task/2", "tags": [{"key": "team", "value": "data"}]},
                {"taskArn": "arn:task/3"},
            ]
        }

        stopper.stop_default_cluster_tasks("hide-snacks")

        mock_ecs.stop_task.assert_called_once_with(
            cluster="default", task="arn:task/1", reason=STOP_REASON
        )

    def test_stop_workload_tasks_scales_service_to_zero(self, stopper, paginators, mock_ecs):
        """Test the service is drained before leftover tasks are stopped"""
        stopper.stop_workload_tasks("app", "test", "backend")

        mock_ecs.update_service.assert_called_once_with(
            cluster=CLUSTER_ARN, service=SERVICE_ARN, desiredCount=0
        )
        mock_ecs.get_waiter.assert_called_once_with("services_stable")
        mock_ecs.get_waiter.return_value.wait.assert_called_once_with(
            cluster=CLUSTER_ARN, services=[SERVICE_ARN]
        )
        tracked = {"update_service", "get_waiter().wait", "stop_task"}
        names = [c[0] for c in mock_ecs.mock_calls if c[0] in tracked]
        assert names[:2] == ["update_service", "get_waiter().wait"]
        assert names[2:] == ["stop_task"] * 3
        paginators["list_tasks"].paginate.assert_called_once_with(
            cluster=CLUSTER_ARN, family="app-test-backend", desiredStatus="RUNNING"
        )
        # Service tasks are stopped regardless of the one-off task tag
        mock_ecs.describe_tasks.assert_not_called()

    def test_stop_workload_tasks_without_service(self, stopper, paginators, mock_ecs):
        """Test a service that is already gone only has its tasks stopped"""
        mock_ecs.describe_services.return_value = {
            "services": [{"serviceArn": SERVICE_ARN, "status": "INACTIVE", "tags": []}]
        }

        stopper.stop_workload_tasks("app", "test", "backend")

        mock_ecs.update_service.assert_not_called()
        mock_ecs.get_waiter.assert_not_called()
        assert mock_ecs.stop_task.call_count == 3

    def test_stop_tasks_without_cluster(self, stopper, paginators, mock_ecs):
        """Test an environment without a cluster has nothing to stop"""
        stopper.stop_one_off_tasks("app", "prod", "hide-snacks")

        paginators["list_tasks"].paginate.assert_not_called()
        mock_ecs.stop_task.assert_not_called()

    def test_stop_default_cluster_tasks(self, stopper, paginators, mock_ecs):
        stopper.stop_default_cluster_tasks("test")

        paginators["list_tasks"].paginate.assert_called_once_with(
            cluster="default", family="task-test", desiredStatus="RUNNING"
        )
        mock_ecs.describe_clusters.assert_not_called()
        assert mock_ecs.stop_task.call_count == 3

    def test_missing_default_cluster(self, stopper, paginators, mock_ecs):
        """Test a missing default cluster is not an error"""
        paginators["list_tasks"].paginate.side_effect = (
            mock_ecs.exceptions.ClusterNotFoundException(
                {"Error": {"Code": "ClusterNotFoundException", "Message": "Cluster not found."}},
                "ListTasks",
            )
        )

        stopper.stop_default_cluster_tasks("test")

        mock_ecs.stop_task.assert_not_called()

    def test_stop_task_errors_propagate(self, stopper, paginators, mock_ecs):
        mock_ecs.stop_task.side_effect = Exception("AccessDeniedException")

        with pytest.raises(Exception, match="AccessDeniedException"):
            stopper.stop_one_off_tasks("app", "test", "hide-snacks")
