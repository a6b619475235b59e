# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Tests for the SSM-backed metadata store
"""

import json

import boto3
import pytest
from moto import mock_aws

from workload_cli.errors import (
    NoSuchApplicationError,
    NoSuchEnvironmentError,
    NoSuchWorkloadError,
)
from workload_cli.store import MetadataStore


def put_json(ssm, name, data):
    ssm.put_parameter(Name=name, Value=json.dumps(data), Type="String")


class TestMetadataStore:
    """Test application, environment and workload records"""

    @pytest.fixture
    def ssm(self):
        with mock_aws():
            ssm = boto3.client("ssm", region_name="us-east-1")
            put_json(
                ssm,
                "/workload-cli/applications/app",
                {
                    "name": "app",
                    "account": "123456789012",
                    "region": "us-east-1",
                    "tags": {"team": "snacks"},
                    "services": ["backend", "frontend"],
                },
            )
            for env, region in [("test", "us-west-2"), ("prod", "us-east-1")]:
                put_json(
                    ssm,
                    f"/workload-cli/applications/app/environments/{env}",
                    {
                        "app": "app",
                        "name": env,
                        "region": region,
                        "accountID": "123456789012",
                        "managerRoleARN": f"arn:aws:iam::123456789012:role/app-{env}-EnvManagerRole",
                    },
                )
            put_json(
                ssm,
                "/workload-cli/applications/app/components/backend",
                {"app": "app", "name": "backend", "type": "Backend Service"},
            )
            yield ssm

    @pytest.fixture
    def store(self, ssm):
        return MetadataStore(boto3.Session(region_name="us-east-1"))

    def test_get_application(self, store):
        app = store.get_application("app")

        assert app.name == "app"
        assert app.tags == {"team": "snacks"}
        assert app.services == ["backend", "frontend"]

    def test_get_missing_application(self, store):
        with pytest.raises(NoSuchApplicationError):
            store.get_application("nope")

    def test_get_environment(self, store):
        env = store.get_environment("app", "test")

        assert env.region == "us-west-2"
        assert env.manager_role_arn == "arn:aws:iam::123456789012:role/app-test-EnvManagerRole"
        assert env.execution_role_arn == ""

    def test_get_missing_environment(self, store):
        with pytest.raises(NoSuchEnvironmentError) as exc_info:
            store.get_environment("app", "staging")

        assert "staging" in str(exc_info.value)

    def test_list_environments_sorted(self, store):
        """Test environments come back in name order without workload records"""
        envs = store.list_environments("app")

        assert [env.name for env in envs] == ["prod", "test"]

    def test_find_workload(self, store):
        assert store.find_workload("app", "backend").type == "Backend Service"
        assert store.find_workload("app", "hide-snacks") is None
        with pytest.raises(NoSuchWorkloadError):
            store.get_workload("app", "hide-snacks")

    def test_delete_service(self, store):
        store.delete_service("app", "backend")

        assert store.find_workload("app", "backend") is None

    def test_delete_service_twice(self, store):
        """Test deleting an already deleted record is not an error"""
        store.delete_service("app", "backend")
        store.delete_service("app", "backend")

    def test_remove_service_from_app(self, store):
        store.remove_service_from_app("app", "backend")

        app = store.get_application("app")
        assert app.services == ["frontend"]
        assert app.tags == {"team": "snacks"}

    def test_remove_unregistered_service(self, store, ssm):
        before = ssm.get_parameter(Name="/workload-cli/applications/app")["Parameter"]

        store.remove_service_from_app("app", "hide-snacks")

        after = ssm.get_parameter(Name="/workload-cli/applications/app")["Parameter"]
        assert after["Version"] == before["Version"]
