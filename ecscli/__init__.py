"""Client helpers for container clusters, services, tasks and CloudFormation stacks."""

__version__ = "0.1.0"

__all__ = [
    "cloudformation_client",
    "ec2_client",
    "ecs_client",
    "errors",
    "flags",
    "stack_params",
    "stack_template",
    "user_agent",
]