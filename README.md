# ecscli

Client helpers for container clusters: building, validating and
deploying the CloudFormation stack that backs a cluster, registering
task definitions with a cache, running and stopping tasks, managing
services, and mapping container instances to EC2 instances.

The clients make no network calls of their own. Each wraps an API
object you supply. That object is called with keyword arguments in the
service's own field names (`StackName=...`, `clusterName=...`,
`InstanceIds=...`) and returns plain dictionaries. A service client
with that calling style works, and so does a small fake in tests.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `ecscli.flags`
  - Flag names and defaults, such as `REGION_FLAG`, `CLUSTER_FLAG` and `CFN_STACK_NAME_PREFIX_DEFAULT_VALUE`.
  - `configure_logging(global_verbose, verbose)` sets the `ecscli` logger to debug level when either flag is true. It returns whether it did so.
- `ecscli.errors`
  - `AwsApiError(code, message)` is an API error with a `code` and a `message`.
  - `is_validation_error` is true for the `ValidationError` code.
- `ecscli.user_agent`
  - `build_user_agent(app_name, version, current_agent)` returns `"<app>/<version> (<os>) <current agent>"`.
  - `apply_user_agent(headers, app_name, version)` rewrites the `User-Agent` entry of a header dictionary, matching the existing name in any case.
- `ecscli.stack_params`
  - `CfnStackParams` is an ordered set of `StackParameter` objects. It has `add`, `add_with_use_previous_value`, `get_parameter`, `validate` and `to_api`.
  - `CfnStackParams.for_update()` marks every known key to keep its previous value.
  - `validate()` raises `ParameterNotFoundError` when a required key (`KeyName`, `EcsCluster`, `EcsAmiId`) is missing. It raises `ValueError` when a parameter has neither a value nor use-previous-value.
- `ecscli.stack_template`
  - `get_template()` returns the cluster stack template as JSON.
  - `template_document()` returns a fresh dictionary copy of it.
- `ecscli.cloudformation_client`
  - `CloudformationClient(api, sleep=None)` has `create_stack`, `update_stack`, `delete_stack` and `validate_stack_exists`.
  - It waits with `wait_until_create_complete`, `wait_until_delete_complete` and `wait_until_update_complete`. These poll every 30 seconds, up to 50, 25 and 5 times respectively.
  - A failed or timed-out wait raises `CloudformationError`.
  - A delete wait treats a `ValidationError` saying the stack "does not exist" as success.
  - `failure_in_create_event`, `failure_in_delete_event` and `failure_in_update_event` classify single stack events.
- `ecscli.ec2_client`
  - `EC2Client(api).describe_instances(instance_ids)` returns a mapping of instance id to instance.
  - It raises `NoReservationsError` when the response has no reservations.
- `ecscli.ecs_client`
  - `ECSClient(api, cluster="", region="")` covers clusters (`create_cluster`, `delete_cluster`, `is_active_cluster`).
  - Services: `create_service`, `update_service`, `update_service_count`, `describe_service`, `delete_service`.
  - Task definitions: `register_task_definition`, `register_task_definition_if_needed`, `describe_task_definition`.
  - Tasks: `get_tasks_pages`, `describe_tasks`, `run_task`, `run_task_with_overrides`, `stop_task`.
  - Container instances: `get_ec2_instance_ids`, which describes them in chunks of 100.

`register_task_definition_if_needed(request, cache)` registers a new task definition in these cases:

- the family has none yet;
- the latest revision is inactive;
- the cache has no active revision for the request.

Otherwise it returns the cached definition. The cache is any object with `get(key)`, which raises on a miss, and `put(key, value)`.

## Example

```python
import time

from ecscli.cloudformation_client import CloudformationClient
from ecscli.stack_params import CfnStackParams
from ecscli.stack_template import get_template

params = CfnStackParams()
params.add("KeyName", "my-key")
params.add("EcsCluster", "default")
params.add("EcsAmiId", "ami-12345")
params.validate()

client = CloudformationClient(api, sleep=time.sleep)  # api: your CloudFormation API object
client.create_stack(get_template(), "amazon-ecs-cli-setup-default", params)
client.wait_until_create_complete("amazon-ecs-cli-setup-default")
```

## What this package does not do

- It has no command-line program. Nothing is installed to run from a shell.
- It does not read or store configuration or credentials.
- It does not build API client objects itself. You create and pass them in.
- It does not handle compose files.