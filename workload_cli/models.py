# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Data model for workload teardown.

Records mirror the JSON documents kept in the metadata store. The remaining
types describe a teardown request, the stack of a deployment instance and the
outcome of a teardown run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional


class WorkloadKind(Enum):
    """Kind of workload being torn down."""

    SERVICE = "service"
    ONE_OFF_TASK = "task"


class StackState(Enum):
    """Result of looking up a workload stack."""

    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"


@dataclass
class Application:
    """An application owning environments and workloads."""

    name: str
    account: str = ""
    region: str = ""
    tags: Dict[str, str] = field(default_factory=dict)
    services: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Application":
        return cls(
            name=data.get("name", ""),
            account=data.get("account", ""),
            region=data.get("region", ""),
            tags=data.get("tags") or {},
            services=list(data.get("services") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "account": self.account,
            "region": self.region,
            "tags": self.tags,
            "services": self.services,
        }


@dataclass
class Environment:
    """A deployment environment of an application."""

    app: str
    name: str
    region: str
    account_id: str = ""
    manager_role_arn: str = ""
    execution_role_arn: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Environment":
        return cls(
            app=data.get("app", ""),
            name=data.get("name", ""),
            region=data.get("region", ""),
            account_id=data.get("accountID", ""),
            manager_role_arn=data.get("managerRoleARN", ""),
            execution_role_arn=data.get("executionRoleARN", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "app": self.app,
            "name": self.name,
            "region": self.region,
            "accountID": self.account_id,
            "managerRoleARN": self.manager_role_arn,
            "executionRoleARN": self.execution_role_arn,
        }


@dataclass
class Workload:
    """A service or job registered in an application."""

    app: str
    name: str
    type: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workload":
        return cls(
            app=data.get("app", ""),
            name=data.get("name", ""),
            type=data.get("type", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"app": self.app, "name": self.name, "type": self.type}


@dataclass
class StackInfo:
    """Stack of a single deployment instance."""

    stack_name: str
    app: str = ""
    env: str = ""
    role_arn: str = ""
    bucket_name: str = ""


class StackLookup(NamedTuple):
    """Outcome of a stack lookup: (state, info). info is None when not found."""

    state: StackState
    info: Optional[StackInfo] = None

    @classmethod
    def found(cls, info: StackInfo) -> "StackLookup":
        return cls(StackState.FOUND, info)

    @classmethod
    def not_found(cls) -> "StackLookup":
        return cls(StackState.NOT_FOUND, None)


@dataclass
class DeleteWorkloadInput:
    """Identifies the service stack to delete in one environment."""

    app: str
    env: str
    name: str
    role_arn: str = ""


@dataclass
class TeardownTarget:
    """
    What to tear down.

    env=None with default_cluster=False means every environment of the
    application. default_cluster=True targets the default cluster (one-off
    tasks only).
    """

    name: str
    kind: WorkloadKind
    app: str = ""
    env: Optional[str] = None
    default_cluster: bool = False
    workload_type: str = ""

    @property
    def label(self) -> str:
        """Noun used in operator messages, "job" for scheduled jobs."""
        if self.kind is WorkloadKind.SERVICE and self.workload_type.lower().endswith("job"):
            return "job"
        return self.kind.value


@dataclass
class EnvironmentOutcome:
    environment: str
    stack_name: str = ""
    already_deleted: bool = False


@dataclass
class TeardownResult:
    """Outcome of a successful teardown run."""

    name: str
    kind: WorkloadKind
    app: str = ""
    label: str = ""
    outcomes: List[EnvironmentOutcome] = field(default_factory=list)
    record_deleted: bool = False
    remaining_environments: List[str] = field(default_factory=list)
