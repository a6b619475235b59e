# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Metadata Store Module

Reads and writes application, environment and workload records kept as JSON
documents in SSM Parameter Store.
"""

import json
import logging
from typing import List, Optional

import boto3

from . import config
from .errors import NoSuchApplicationError, NoSuchEnvironmentError, NoSuchWorkloadError
from .models import Application, Environment, Workload

logger = logging.getLogger(__name__)


class MetadataStore:
    """Catalog of what is deployed where"""

    def __init__(self, session: Optional[boto3.Session] = None):
        """
        Initialize metadata store

        Args:
            session: boto3 session in the application's home region (optional)
        """
        session = session or boto3.Session()
        self.ssm = session.client("ssm")

    def get_application(self, app: str) -> Application:
        """Get an application record"""
        data = self._get_json(config.FMT_APP_PARAM_PATH.format(app=app))
        if data is None:
            raise NoSuchApplicationError(app)
        return Application.from_dict(data)

    def get_environment(self, app: str, env: str) -> Environment:
        """Get an environment record"""
        data = self._get_json(config.FMT_ENV_PARAM_PATH.format(app=app, env=env))
        if data is None:
            raise NoSuchEnvironmentError(app, env)
        return Environment.from_dict(data)

    def list_environments(self, app: str) -> List[Environment]:
        """
        List all environments of an application

        Args:
            app: Application name

        Returns:
            Environments sorted by name
        """
        path = config.FMT_ROOT_ENV_PARAM_PATH.format(app=app)
        environments = []

        paginator = self.ssm.get_paginator("get_parameters_by_path")
        for page in paginator.paginate(Path=path, Recursive=False):
            for param in page.get("Parameters", []):
                environments.append(Environment.from_dict(json.loads(param["Value"])))

        environments.sort(key=lambda env: env.name)
        logger.debug(f"Found {len(environments)} environments in {app}")
        return environments

    def get_workload(self, app: str, name: str) -> Workload:
        """Get a workload record"""
        data = self._get_json(
            config.FMT_WORKLOAD_PARAM_PATH.format(app=app, name=name)
        )
        if data is None:
            raise NoSuchWorkloadError(app, name)
        return Workload.from_dict(data)

    def find_workload(self, app: str, name: str) -> Optional[Workload]:
        """Get a workload record, or None if it isn't registered"""
        try:
            return self.get_workload(app, name)
        except NoSuchWorkloadError:
            return None

    def delete_service(self, app: str, name: str) -> None:
        """
        Delete a service record

        A record that is already gone is not an error.
        """
        param_name = config.FMT_WORKLOAD_PARAM_PATH.format(app=app, name=name)
        try:
            self.ssm.delete_parameter(Name=param_name)
            logger.info(f"Deleted service {name} from application {app}")
        except self.ssm.exceptions.ParameterNotFound:
            logger.debug(f"Service record {param_name} already deleted")

    def remove_service_from_app(self, app: str, name: str) -> None:
        """Deregister a service from its application's resource set"""
        application = self.get_application(app)
        if name not in application.services:
            logger.debug(f"Service {name} is not registered in application {app}")
            return

        application.services = [svc for svc in application.services if svc != name]
        self.ssm.put_parameter(
            Name=config.FMT_APP_PARAM_PATH.format(app=app),
            Value=json.dumps(application.to_dict()),
            Type="String",
            Overwrite=True,
        )
        logger.info(f"Removed service {name} from application {app}")

    def _get_json(self, param_name: str) -> Optional[dict]:
        try:
            response = self.ssm.get_parameter(Name=param_name)
        except self.ssm.exceptions.ParameterNotFound:
            return None
        return json.loads(response["Parameter"]["Value"])
