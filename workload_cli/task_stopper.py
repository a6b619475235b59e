# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Task Stopper Module

Halts the running ECS compute of a workload. Services are scaled to zero and
left to drain before any remaining task is stopped, so the scheduler can't
start replacements. One-off tasks are only stopped when they were started by
this CLI.
"""

import logging
from typing import List, Optional

import boto3

from . import config

logger = logging.getLogger(__name__)

# Per-call limits of the ECS describe APIs
DESCRIBE_CLUSTERS_BATCH = 100
DESCRIBE_SERVICES_BATCH = 10
DESCRIBE_TASKS_BATCH = 100


class TaskStopper:
    """Stops running ECS tasks of a workload"""

    def __init__(self, session: boto3.Session):
        self.ecs = session.client("ecs")

    def stop_one_off_tasks(self, app: str, env: str, name: str) -> None:
        """Stop the one-off tasks of a family in an environment's cluster"""
        cluster = self.cluster_arn(app, env)
        if not cluster:
            logger.debug(f"No cluster for {app}/{env}, nothing to stop")
            return
        self._stop_tasks(cluster, config.task_family(name), owned_only=True)

    def stop_default_cluster_tasks(self, name: str) -> None:
        """Stop the one-off tasks of a family in the default cluster"""
        self._stop_tasks(
            config.DEFAULT_CLUSTER, config.task_family(name), owned_only=True
        )

    def stop_workload_tasks(self, app: str, env: str, name: str) -> None:
        """
        Halt a service in an environment's cluster

        The ECS service is scaled to zero and waited on until stable, then any
        task still running in the service's family is stopped.
        """
        cluster = self.cluster_arn(app, env)
        if not cluster:
            logger.debug(f"No cluster for {app}/{env}, nothing to stop")
            return

        service = self.service_arn(cluster, app, env, name)
        if service:
            self._scale_to_zero(cluster, service)
        self._stop_tasks(cluster, config.service_family(app, env, name))

    def cluster_arn(self, app: str, env: str) -> Optional[str]:
        """
        Find the cluster of an environment by its tags

        Returns:
            Cluster ARN, or None if the environment has no cluster
        """
        cluster_arns: List[str] = []
        paginator = self.ecs.get_paginator("list_clusters")
        for page in paginator.paginate():
            cluster_arns.extend(page.get("clusterArns", []))

        for i in range(0, len(cluster_arns), DESCRIBE_CLUSTERS_BATCH):
            response = self.ecs.describe_clusters(
                clusters=cluster_arns[i : i + DESCRIBE_CLUSTERS_BATCH],
                include=["TAGS"],
            )
            for cluster in response.get("clusters", []):
                tags = _tags(cluster)
                if (
                    tags.get(config.APP_TAG_KEY) == app
                    and tags.get(config.ENV_TAG_KEY) == env
                ):
                    return cluster["clusterArn"]
        return None

    def service_arn(self, cluster: str, app: str, env: str, name: str) -> Optional[str]:
        """Find the active ECS service of a workload by its tags"""
        service_arns: List[str] = []
        paginator = self.ecs.get_paginator("list_services")
        for page in paginator.paginate(cluster=cluster):
            service_arns.extend(page.get("serviceArns", []))

        for i in range(0, len(service_arns), DESCRIBE_SERVICES_BATCH):
            response = self.ecs.describe_services(
                cluster=cluster,
                services=service_arns[i : i + DESCRIBE_SERVICES_BATCH],
                include=["TAGS"],
            )
            for service in response.get("services", []):
                if service.get("status") == "INACTIVE":
                    continue
                tags = _tags(service)
                if (
                    tags.get(config.APP_TAG_KEY) == app
                    and tags.get(config.ENV_TAG_KEY) == env
                    and tags.get(config.SERVICE_TAG_KEY) == name
                ):
                    return service["serviceArn"]
        return None

    def _scale_to_zero(self, cluster: str, service: str) -> None:
        self.ecs.update_service(cluster=cluster, service=service, desiredCount=0)
        logger.info(f"Scaled service {service} to 0 tasks, waiting for it to drain")

        waiter = self.ecs.get_waiter("services_stable")
        waiter.wait(cluster=cluster, services=[service])
        logger.info(f"Service {service} has no running tasks")

    def _stop_tasks(self, cluster: str, family: str, owned_only: bool = False) -> None:
        try:
            task_arns = []
            paginator = self.ecs.get_paginator("list_tasks")
            for page in paginator.paginate(
                cluster=cluster, family=family, desiredStatus="RUNNING"
            ):
                task_arns.extend(page.get("taskArns", []))
        except self.ecs.exceptions.ClusterNotFoundException:
            logger.debug(f"Cluster {cluster} does not exist, nothing to stop")
            return

        if owned_only and task_arns:
            task_arns = self._owned_tasks(cluster, task_arns)

        for task_arn in task_arns:
            self.ecs.stop_task(
                cluster=cluster, task=task_arn, reason=config.TASK_STOP_REASON
            )
        logger.info(f"Stopped {len(task_arns)} tasks in family {family}")

    def _owned_tasks(self, cluster: str, task_arns: List[str]) -> List[str]:
        """Keep the tasks tagged as started by this CLI"""
        owned = []
        for i in range(0, len(task_arns), DESCRIBE_TASKS_BATCH):
            response = self.ecs.describe_tasks(
                cluster=cluster,
                tasks=task_arns[i : i + DESCRIBE_TASKS_BATCH],
                include=["TAGS"],
            )
            for task in response.get("tasks", []):
                if config.TASK_TAG_KEY in _tags(task):
                    owned.append(task["taskArn"])
                else:
                    logger.debug(f"Skipping task {task['taskArn']} not started by this CLI")
        return owned


def _tags(resource: dict) -> dict:
    return {t.get("key"): t.get("value") for t in resource.get("tags", [])}
