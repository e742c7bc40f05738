"""Client for the parts of the ECS API the tool uses."""

import hashlib
import json
import logging

from .flags import LOGGER_NAME

logger = logging.getLogger(f"{LOGGER_NAME}.ecs")

ECS_CHUNK_SIZE = 100

TASK_DEFINITION_STATUS_ACTIVE = "ACTIVE"
TASK_DEFINITION_STATUS_INACTIVE = "INACTIVE"
CLUSTER_STATUS_ACTIVE = "ACTIVE"


class EcsClientError(RuntimeError):
    """Raised when an ECS response cannot be used."""


def _account_id_from_arn(arn):
    parts = (arn or "").split(":")
    return parts[4] if len(parts) > 4 else ""


def _deployment_fields(deployment_config):
    fields = {}
    if deployment_config:
        if deployment_config.get("maximumPercent") is not None:
            fields["deployment-max-percent"] = deployment_config["maximumPercent"]
        if deployment_config.get("minimumHealthyPercent") is not None:
            fields["deployment-min-healthy-percent"] = deployment_config[
                "minimumHealthyPercent"
            ]
    return fields


def _chunks(items, size):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class ECSClient:
    """Wraps an ECS API object taking keyword arguments and returning dictionaries.

    Every cluster-scoped call is made against ``cluster``; ``region`` is part of
    the key under which registered task definitions are cached.
    """

    def __init__(self, api, cluster="", region=""):
        self.api = api
        self.cluster = cluster
        self.region = region

    # Clusters

    def create_cluster(self, cluster_name):
        """Create a cluster and return its name."""
        try:
            response = self.api.create_cluster(clusterName=cluster_name)
        except Exception as err:
            logger.error("Failed to Create Cluster: cluster=%s error=%s", cluster_name, err)
            raise
        name = response["cluster"]["clusterName"]
        logger.info("Created cluster: cluster=%s", name)
        return name

    def delete_cluster(self, cluster_name):
        """Delete a cluster and return its name."""
        try:
            response = self.api.delete_cluster(cluster=cluster_name)
        except Exception as err:
            logger.error("Failed to Delete Cluster: cluster=%s error=%s", cluster_name, err)
            raise
        name = response["cluster"]["clusterName"]
        logger.info("Deleted cluster: cluster=%s", name)
        return name

    def is_active_cluster(self, cluster_name):
        """True if the cluster exists and is ACTIVE."""
        output = self.api.describe_clusters(clusters=[cluster_name])
        if output.get("failures"):
            return False
        clusters = output.get("clusters") or []
        if not clusters:
            raise EcsClientError(
                "Got an empty list of clusters while describing the cluster "
                f"'{cluster_name}'"
            )
        status = clusters[0].get("status") or ""
        if status == CLUSTER_STATUS_ACTIVE:
            return True
        logger.debug("cluster status: cluster=%s status=%s", cluster_name, status)
        return False

    # Services

    def create_service(self, service_name, task_def_name, deployment_config=None):
        """Create a service with a desired count of zero."""
        request = {
            "desiredCount": 0,
            "serviceName": service_name,
            "taskDefinition": task_def_name,
            "cluster": self.cluster,
        }
        if deployment_config is not None:
            request["deploymentConfiguration"] = deployment_config
        try:
            self.api.create_service(**request)
        except Exception as err:
            logger.error("Error creating service: service=%s error=%s", service_name, err)
            raise
        fields = {"service": service_name, "taskDefinition": task_def_name}
        fields.update(_deployment_fields(deployment_config))
        logger.info("Created an ECS service: %s", fields)

    def update_service_count(self, service_name, count, deployment_config=None):
        """Change a service's desired count, keeping its task definition."""
        self.update_service(service_name, "", count, deployment_config)

    def update_service(self, service_name, task_definition, count, deployment_config=None):
        """Update a service's desired count and, if given, its task definition."""
        request = {
            "desiredCount": count,
            "service": service_name,
            "cluster": self.cluster,
        }
        if deployment_config is not None:
            request["deploymentConfiguration"] = deployment_config
        if task_definition:
            request["taskDefinition"] = task_definition
        try:
            self.api.update_service(**request)
        except Exception as err:
            logger.error("Error updating service: service=%s error=%s", service_name, err)
            raise
        fields = {"service": service_name, "count": count}
        if task_definition:
            fields["taskDefinition"] = task_definition
        fields.update(_deployment_fields(deployment_config))
        logger.debug("Updated ECS service: %s", fields)

    def describe_service(self, service_name):
        """Return the describe-services response for one service."""
        try:
            return self.api.describe_services(
                services=[service_name], cluster=self.cluster
            )
        except Exception as err:
            logger.error("Error describing service: service=%s error=%s", service_name, err)
            raise

    def delete_service(self, service_name):
        """Delete a service."""
        try:
            self.api.delete_service(service=service_name, cluster=self.cluster)
        except Exception as err:
            logger.error("Error deleting service: service=%s error=%s", service_name, err)
            raise
        logger.info("Deleted ECS service: service=%s", service_name)

    # Task definitions

    def register_task_definition(self, request):
        """Register a task definition and return it."""
        try:
            response = self.api.register_task_definition(**request)
        except Exception as err:
            logger.error(
                "Error registering task definition: family=%s error=%s",
                request.get("family", ""),
                err,
            )
            raise
        return response["taskDefinition"]

    def register_task_definition_if_needed(self, request, cache):
        """Return a cached active task definition for the request, or register one.

        ``cache`` has ``get(key)``, which raises on a miss, and ``put(key, value)``.
        """
        family = request.get("family")
        if family is None:
            raise ValueError("invalid task definitions: family is required")

        try:
            latest = self.describe_task_definition(family)
        except Exception:  # noqa: BLE001 - no definition yet for this family
            latest = None
        if latest is None or latest.get("status") == TASK_DEFINITION_STATUS_INACTIVE:
            return self._persist_task_definition(request, cache)

        key = self._cache_key(latest, request)
        try:
            cached = cache.get(key)
        except Exception:  # noqa: BLE001 - any failure is a miss
            cached = None
        if cached is None or not self._is_active_revision(cached):
            logger.debug("cache miss: taskDefHash=%s taskDef=%s", key, cached)
            return self._persist_task_definition(request, cache)

        logger.debug("cache hit: taskDefHash=%s taskDef=%s", key, cached)
        return cached

    def describe_task_definition(self, task_definition_name):
        """Return the task definition with the given family, family:revision or ARN."""
        response = self.api.describe_task_definition(
            taskDefinition=task_definition_name
        )
        return response["taskDefinition"]

    def _is_active_revision(self, cached):
        arn = cached.get("taskDefinitionArn", "")
        try:
            of_record = self.describe_task_definition(arn)
        except Exception as err:  # noqa: BLE001 - treated as not active
            logger.error(
                "Error describing task definition: taskDefinitionName=%s error=%s",
                arn,
                err,
            )
            return False
        if of_record is None:
            return False
        return of_record.get("status") == TASK_DEFINITION_STATUS_ACTIVE

    def _cache_key(self, task_definition, request):
        account_id = _account_id_from_arn(task_definition.get("taskDefinitionArn"))
        body = json.dumps(request, sort_keys=True, default=str)
        return hashlib.md5(f"{self.region}-{account_id}-{body}".encode()).hexdigest()

    def _persist_task_definition(self, request, cache):
        registered = self.register_task_definition(request)
        key = self._cache_key(registered, request)
        try:
            cache.put(key, registered)
        except Exception as err:  # noqa: BLE001 - caching is best effort
            logger.warning(
                "Could not cache task definition; redundant task definitions might "
                "be created: error=%s",
                err,
            )
        return registered

    # Tasks

    def get_tasks_pages(self, list_tasks_input, process_tasks):
        """List tasks page by page, describe each page and pass it to ``process_tasks``.

        Processing stops at the first empty page; any error stops it and is raised.
        """
        request = dict(list_tasks_input)
        request["cluster"] = self.cluster
        while True:
            try:
                page = self.api.list_tasks(**request)
            except Exception as err:
                logger.error("Error listing tasks: request=%s error=%s", request, err)
                raise
            task_arns = page.get("taskArns") or []
            if not task_arns:
                return
            process_tasks(self.describe_tasks(task_arns))
            token = page.get("nextToken")
            if not token:
                return
            request["nextToken"] = token

    def describe_tasks(self, task_arns):
        """Return the descriptions of the given tasks."""
        try:
            response = self.api.describe_tasks(tasks=list(task_arns), cluster=self.cluster)
        except Exception as err:
            logger.error("Error describing tasks: error=%s", err)
            raise
        if response is None:
            logger.error("Error describing tasks: empty response")
            return []
        return response.get("tasks") or []

    def run_task(self, task_definition, started_by, count):
        """Run ``count`` copies of a task definition and return the response."""
        return self._run_task(
            taskDefinition=task_definition, startedBy=started_by, count=count
        )

    def run_task_with_overrides(self, task_definition, started_by, count, overrides):
        """Run a task definition with each named container's command replaced."""
        container_overrides = [
            {"name": container, "command": [command]}
            for container, command in overrides.items()
        ]
        return self._run_task(
            taskDefinition=task_definition,
            startedBy=started_by,
            count=count,
            overrides={"containerOverrides": container_overrides},
        )

    def _run_task(self, **request):
        try:
            return self.api.run_task(cluster=self.cluster, **request)
        except Exception as err:
            logger.error(
                "Error running tasks: task definition=%s error=%s",
                request.get("taskDefinition"),
                err,
            )
            raise

    def stop_task(self, task_id):
        """Stop a running task."""
        try:
            self.api.stop_task(cluster=self.cluster, task=task_id)
        except Exception as err:
            logger.error("Stop task failed: taskId=%s error=%s", task_id, err)
            raise

    # Container instances

    def get_ec2_instance_ids(self, container_instance_arns):
        """Return a mapping of container instance ARN to EC2 instance id."""
        arns = list(container_instance_arns)
        result = {}
        for chunk in _chunks(arns, ECS_CHUNK_SIZE):
            try:
                response = self.api.describe_container_instances(
                    cluster=self.cluster, containerInstances=chunk
                )
            except Exception as err:
                logger.error(
                    "Error describing container instance: containerInstancesCount=%d "
                    "error=%s",
                    len(arns),
                    err,
                )
                raise
            for instance in response.get("containerInstances") or ():
                if instance.get("ec2InstanceId") is not None:
                    result[instance.get("containerInstanceArn", "")] = instance[
                        "ec2InstanceId"
                    ]
        return result