# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Teardown Module

Removes the deployment instances of a workload environment by environment:

1. stop running tasks
2. empty the image repository (by the last environment of each region)
3. look up the stack (a missing stack means the environment is already done)
4. empty the artifact bucket, if the stack has one
5. delete the stack

Environments are processed one at a time in name order and the run stops at
the first failure. Nothing is rolled back; re-running the teardown picks up
where the previous run stopped. A service is removed from the metadata store
only once none of its stacks remain in any environment.
"""

import logging
from typing import Callable, List, Optional

import boto3

from . import config
from .bucket_emptier import BucketEmptier
from .errors import TeardownError, WorkloadCliError
from .image_remover import ImageRemover
from .models import (
    DeleteWorkloadInput,
    Environment,
    EnvironmentOutcome,
    StackInfo,
    StackLookup,
    StackState,
    TeardownResult,
    TeardownTarget,
    WorkloadKind,
)
from .progress import ProgressReporter, Spinner
from .sessions import SessionResolver
from .stack_manager import StackManager
from .store import MetadataStore
from .task_stopper import TaskStopper

logger = logging.getLogger(__name__)


class TeardownOrchestrator:
    """Tears down a workload's resources across environments"""

    def __init__(
        self,
        store: MetadataStore,
        sessions: SessionResolver,
        progress: Optional[ProgressReporter] = None,
        new_task_stopper: Callable[[boto3.Session], TaskStopper] = TaskStopper,
        new_image_remover: Callable[[boto3.Session], ImageRemover] = ImageRemover,
        new_bucket_emptier: Callable[[boto3.Session], BucketEmptier] = BucketEmptier,
        new_stack_manager: Callable[[boto3.Session], StackManager] = StackManager,
    ):
        """
        Initialize teardown orchestrator

        Args:
            store: Metadata store of the application
            sessions: Resolver for environment and default sessions
            progress: Sink for step notifications (defaults to a console spinner)
            new_task_stopper: Builds a task stopper from a session
            new_image_remover: Builds an image repository cleaner from a session
            new_bucket_emptier: Builds an artifact bucket emptier from a session
            new_stack_manager: Builds a stack manager from a session
        """
        self.store = store
        self.sessions = sessions
        self.progress = progress or Spinner()
        self.new_task_stopper = new_task_stopper
        self.new_image_remover = new_image_remover
        self.new_bucket_emptier = new_bucket_emptier
        self.new_stack_manager = new_stack_manager

    def teardown(self, target: TeardownTarget) -> TeardownResult:
        """
        Tear down a workload

        Args:
            target: Workload and the environments to remove it from

        Returns:
            TeardownResult with one outcome per processed environment

        Raises:
            TeardownError: A step failed; earlier environments stay torn down
        """
        result = TeardownResult(
            name=target.name, kind=target.kind, app=target.app, label=target.label
        )

        if target.default_cluster:
            if target.kind is WorkloadKind.SERVICE:
                raise WorkloadCliError(
                    f"{target.label} {target.name} can't be deleted "
                    "from the default cluster"
                )
            logger.info(f"Tearing down task {target.name} from the default cluster")
            result.outcomes.append(self._teardown_instance(target, None))
            return result

        environments = self._target_environments(target)
        # Each region's shared repository is cleared by its last environment,
        # after every other environment in that region has been stopped
        last_in_region = {env.region: env.name for env in environments}
        for env in environments:
            logger.info(
                f"Tearing down {target.label} {target.name} from environment {env.name}"
            )
            clear_repository = last_in_region[env.region] == env.name
            result.outcomes.append(self._teardown_instance(target, env, clear_repository))

        if target.kind is WorkloadKind.SERVICE:
            self._cleanup_service_metadata(target, environments, result)

        return result

    def stack_exists(self, target: TeardownTarget) -> bool:
        """
        Check whether the target has a stack anywhere in its scope

        Used before a one-off task teardown so that an unknown name never
        stops tasks or purges a repository.

        Raises:
            TeardownError: A session or lookup failed
        """
        if target.default_cluster:
            environments: List[Optional[Environment]] = [None]
        else:
            environments = list(self._target_environments(target))

        for env in environments:
            session = self._get_session(target, env)
            lookup = self._lookup_stack(self.new_stack_manager(session), target, env)
            if lookup.state is StackState.FOUND:
                return True
        return False

    def _target_environments(self, target: TeardownTarget) -> List[Environment]:
        if target.env:
            return [self.store.get_environment(target.app, target.env)]
        return sorted(self.store.list_environments(target.app), key=lambda e: e.name)

    def _teardown_instance(
        self,
        target: TeardownTarget,
        env: Optional[Environment],
        clear_repository: bool = True,
    ) -> EnvironmentOutcome:
        """Tear down one deployment instance; env=None is the default cluster"""
        env_name = env.name if env else None
        outcome = EnvironmentOutcome(environment=env_name or config.DEFAULT_CLUSTER)

        session = self._get_session(target, env)
        self._stop_tasks(session, target, env)

        if clear_repository:
            repo_session = self._get_repository_session(target, env, session)
            self._clear_repository(repo_session, target, env_name)
        else:
            logger.debug(
                f"Leaving the repository of {target.name} to the last environment "
                f"in {env.region}"
            )

        stack_manager = self.new_stack_manager(session)
        lookup = self._lookup_stack(stack_manager, target, env)
        if lookup.state is StackState.NOT_FOUND:
            logger.info(
                f"No stack for {target.label} {target.name} in {outcome.environment}, "
                "already deleted"
            )
            outcome.already_deleted = True
            return outcome

        info = lookup.info
        outcome.stack_name = info.stack_name
        if info.bucket_name:
            self._empty_bucket(session, info, target, env_name)
        self._delete_stack(stack_manager, info, target, env)
        return outcome

    def _get_session(
        self, target: TeardownTarget, env: Optional[Environment]
    ) -> boto3.Session:
        try:
            if env is None:
                return self.sessions.default()
            return self.sessions.for_environment(env)
        except Exception as e:
            raise TeardownError(
                "get session", "get session", e, _env_name(env), target.name
            ) from e

    def _get_repository_session(
        self, target: TeardownTarget, env: Optional[Environment], session: boto3.Session
    ) -> boto3.Session:
        """Repositories are cleared with the operator's credentials in the env's region"""
        if env is None:
            return session
        try:
            return self.sessions.default_with_region(env.region)
        except Exception as e:
            raise TeardownError(
                "get session", "get session", e, env.name, target.name
            ) from e

    def _stop_tasks(
        self, session: boto3.Session, target: TeardownTarget, env: Optional[Environment]
    ) -> None:
        name = target.name
        stopper = self.new_task_stopper(session)

        self.progress.start(f"Stopping all running tasks in family {name}.")
        try:
            if env is None:
                stopper.stop_default_cluster_tasks(name)
            elif target.kind is WorkloadKind.SERVICE:
                stopper.stop_workload_tasks(target.app, env.name, name)
            else:
                stopper.stop_one_off_tasks(target.app, env.name, name)
        except Exception as e:
            where = "default cluster" if env is None else f"environment {env.name}"
            self.progress.fail(f"Error stopping running tasks in {where}.")
            raise TeardownError(
                "stop tasks",
                f"stop running tasks in family {name}",
                e,
                _env_name(env),
                name,
            ) from e
        self.progress.succeed(f"Stopped all running tasks in family {name}.")

    def _clear_repository(
        self, session: boto3.Session, target: TeardownTarget, env_name: Optional[str]
    ) -> None:
        name, kind = target.name, target.label
        if target.kind is WorkloadKind.SERVICE:
            repo_name = config.service_repo_name(target.app, name)
        else:
            repo_name = config.task_repo_name(name)

        self.progress.start(f"Emptying ECR repository for {kind} {name}.")
        try:
            self.new_image_remover(session).clear_repository(repo_name)
        except Exception as e:
            self.progress.fail("Error emptying ECR repository.")
            raise TeardownError(
                "empty repository",
                f"empty ECR repository for {kind} {name}",
                e,
                env_name,
                name,
            ) from e
        self.progress.succeed(f"Emptied ECR repository for {kind} {name}.")

    def _lookup_stack(
        self,
        stack_manager: StackManager,
        target: TeardownTarget,
        env: Optional[Environment],
    ) -> StackLookup:
        try:
            if target.kind is WorkloadKind.SERVICE:
                return stack_manager.lookup_service_stack(
                    target.app, env.name, target.name
                )
            return stack_manager.lookup_task_stack(target.name)
        except Exception as e:
            raise TeardownError(
                "lookup stack", None, e, _env_name(env), target.name
            ) from e

    def _empty_bucket(
        self,
        session: boto3.Session,
        info: StackInfo,
        target: TeardownTarget,
        env_name: Optional[str],
    ) -> None:
        name, kind = target.name, target.label

        self.progress.start(f"Emptying S3 bucket for {kind} {name}.")
        try:
            self.new_bucket_emptier(session).empty_bucket(info.bucket_name)
        except Exception as e:
            self.progress.fail("Error emptying S3 bucket.")
            raise TeardownError(
                "empty bucket", f"empty S3 bucket for {kind} {name}", e, env_name, name
            ) from e
        self.progress.succeed(f"Emptied S3 bucket for {kind} {name}.")

    def _delete_stack(
        self,
        stack_manager: StackManager,
        info: StackInfo,
        target: TeardownTarget,
        env: Optional[Environment],
    ) -> None:
        name, kind = target.name, target.label

        self.progress.start(f"Deleting CloudFormation stack for {kind} {name}.")
        try:
            if target.kind is WorkloadKind.SERVICE:
                stack_manager.delete_workload(
                    DeleteWorkloadInput(
                        app=target.app,
                        env=env.name,
                        name=name,
                        role_arn=info.role_arn or env.execution_role_arn,
                    )
                )
            else:
                stack_manager.delete_task(info)
        except Exception as e:
            self.progress.fail("Error deleting CloudFormation stack.")
            raise TeardownError(
                "delete stack",
                f"delete stack for {kind} {name}",
                e,
                _env_name(env),
                name,
            ) from e
        self.progress.succeed(f"Deleted resources of {kind} {name}.")

    def _cleanup_service_metadata(
        self,
        target: TeardownTarget,
        processed: List[Environment],
        result: TeardownResult,
    ) -> None:
        """Deregister and delete the service once no environment still runs it"""
        name, app, label = target.name, target.app, target.label

        remaining = self._remaining_deployments(target, processed)
        result.remaining_environments = remaining
        if remaining:
            logger.info(
                f"The {label} {name} is still deployed to {', '.join(remaining)}, "
                "keeping its record"
            )
            return

        self.progress.start(f"Removing {label} {name} from application {app}.")
        try:
            self.store.remove_service_from_app(app, name)
        except Exception as e:
            self.progress.fail(f"Error removing {label} {name} from application {app}.")
            raise TeardownError(
                "remove from app",
                f"remove {label} {name} from application {app}",
                e,
                workload=name,
            ) from e

        try:
            self.store.delete_service(app, name)
        except Exception as e:
            self.progress.fail(f"Error deleting {label} {name} from application {app}.")
            raise TeardownError(
                "delete record",
                f"delete {label} {name} from application {app}",
                e,
                workload=name,
            ) from e
        self.progress.succeed(f"Deleted {label} {name} from application {app}.")
        result.record_deleted = True

    def _remaining_deployments(
        self, target: TeardownTarget, processed: List[Environment]
    ) -> List[str]:
        """Names of environments outside this run that still hold a service stack"""
        if not target.env:
            return []

        done = {env.name for env in processed}
        remaining = []
        for env in sorted(self.store.list_environments(target.app), key=lambda e: e.name):
            if env.name in done:
                continue
            session = self._get_session(target, env)
            lookup = self._lookup_stack(self.new_stack_manager(session), target, env)
            if lookup.state is StackState.FOUND:
                remaining.append(env.name)
        return remaining


def _env_name(env: Optional[Environment]) -> Optional[str]:
    return env.name if env else None
