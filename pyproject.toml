[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ecscli"
version = "0.1.0"
description = "Client helpers for container clusters, services, tasks and the CloudFormation stack behind a cluster"
requires-python = ">=3.10"
dependencies = []
keywords = ["ecs", "containers", "cloudformation", "ec2", "cluster", "task-definition"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ecscli"]

[tool.pytest.ini_options]
addopts = "-ra"
