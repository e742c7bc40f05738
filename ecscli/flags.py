"""Flag names shared by the command line and the hook run before every command."""

import logging

LOGGER_NAME = "ecscli"

ACCESS_ID_FLAG = "access-key"
SIGNING_FLAG = "secret-key"
REGION_FLAG = "region"
AWS_REGION_ENV_VAR = "AWS_REGION"
AWS_DEFAULT_REGION_ENV_VAR = "AWS_DEFAULT_REGION"
PROFILE_FLAG = "profile"
CLUSTER_FLAG = "cluster"
VERBOSE_FLAG = "verbose"

COMPOSE_PROJECT_NAME_PREFIX_FLAG = "compose-project-name-prefix"
COMPOSE_PROJECT_NAME_PREFIX_DEFAULT_VALUE = "ecscompose-"
COMPOSE_SERVICE_NAME_PREFIX_FLAG = "compose-service-name-prefix"
COMPOSE_SERVICE_NAME_PREFIX_DEFAULT_VALUE = COMPOSE_PROJECT_NAME_PREFIX_DEFAULT_VALUE + "service-"
CFN_STACK_NAME_PREFIX_FLAG = "cfn-stack-name-prefix"
CFN_STACK_NAME_PREFIX_DEFAULT_VALUE = "amazon-ecs-cli-setup-"


def configure_logging(global_verbose, verbose):
    """Switch the package logger to debug level when either verbose flag is set.

    Returns True when debug logging was enabled.
    """
    if global_verbose or verbose:
        logging.getLogger(LOGGER_NAME).setLevel(logging.DEBUG)
        return True
    return False