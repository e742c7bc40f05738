"""Client for the CloudFormation stack that backs an ECS cluster."""

import logging
import time

from .errors import AwsApiError
from .flags import LOGGER_NAME

logger = logging.getLogger(f"{LOGGER_NAME}.cloudformation")

MAX_RETRIES_CREATE = 50
MAX_RETRIES_DELETE = 25
MAX_RETRIES_UPDATE = 5
DELAY_WAIT = 30.0

CAPABILITY_IAM = "CAPABILITY_IAM"

STACK_STATUS_CREATE_COMPLETE = "CREATE_COMPLETE"
STACK_STATUS_CREATE_FAILED = "CREATE_FAILED"
STACK_STATUS_CREATE_IN_PROGRESS = "CREATE_IN_PROGRESS"
STACK_STATUS_ROLLBACK_IN_PROGRESS = "ROLLBACK_IN_PROGRESS"
STACK_STATUS_ROLLBACK_COMPLETE = "ROLLBACK_COMPLETE"
STACK_STATUS_DELETE_COMPLETE = "DELETE_COMPLETE"
STACK_STATUS_DELETE_FAILED = "DELETE_FAILED"
STACK_STATUS_DELETE_IN_PROGRESS = "DELETE_IN_PROGRESS"
STACK_STATUS_UPDATE_COMPLETE = "UPDATE_COMPLETE"
STACK_STATUS_UPDATE_IN_PROGRESS = "UPDATE_IN_PROGRESS"
STACK_STATUS_UPDATE_ROLLBACK_COMPLETE = "UPDATE_ROLLBACK_COMPLETE"
STACK_STATUS_UPDATE_ROLLBACK_FAILED = "UPDATE_ROLLBACK_FAILED"

RESOURCE_STATUS_CREATE_FAILED = "CREATE_FAILED"
RESOURCE_STATUS_DELETE_FAILED = "DELETE_FAILED"
RESOURCE_STATUS_UPDATE_FAILED = "UPDATE_FAILED"

CREATE_STACK_FAILURES = frozenset(
    {
        STACK_STATUS_CREATE_FAILED,
        STACK_STATUS_ROLLBACK_IN_PROGRESS,
        STACK_STATUS_ROLLBACK_COMPLETE,
        STACK_STATUS_UPDATE_ROLLBACK_FAILED,
    }
)
DELETE_STACK_FAILURES = frozenset({STACK_STATUS_DELETE_FAILED})
UPDATE_STACK_FAILURES = frozenset(
    {STACK_STATUS_UPDATE_ROLLBACK_COMPLETE, STACK_STATUS_UPDATE_ROLLBACK_FAILED}
)


class CloudformationError(RuntimeError):
    """Raised when a stack operation fails or cannot be observed."""


def _failure_event(event, failed_status, message):
    status = event.get("ResourceStatus")
    if status != failed_status:
        return False
    logger.error(
        "%s: eventStatus=%s resource=%s reason=%s",
        message,
        status,
        event.get("PhysicalResourceId", ""),
        event.get("ResourceStatusReason", ""),
    )
    return True


def failure_in_create_event(event):
    """True if the stack event reports a failed resource creation."""
    logger.debug(
        "parsing event: eventStatus=%s resource=%s",
        event.get("ResourceStatus", ""),
        event.get("PhysicalResourceId", ""),
    )
    return _failure_event(
        event,
        RESOURCE_STATUS_CREATE_FAILED,
        "Error creating cloudformation stack for cluster",
    )


def failure_in_delete_event(event):
    """True if the stack event reports a failed resource deletion."""
    return _failure_event(
        event,
        RESOURCE_STATUS_DELETE_FAILED,
        "Error deleting cloudformation stack for cluster",
    )


def failure_in_update_event(event):
    """True if the stack event reports a failed resource update."""
    return _failure_event(
        event,
        RESOURCE_STATUS_UPDATE_FAILED,
        "Error updating cloudformation stack for cluster",
    )


class CloudformationClient:
    """Creates, updates, deletes and waits on a CloudFormation stack.

    ``api`` exposes the CloudFormation calls with keyword arguments and
    dictionary responses; ``sleep`` is called with a delay in seconds.
    """

    def __init__(self, api, sleep=None):
        self.api = api
        self.sleep = sleep if sleep is not None else time.sleep

    def create_stack(self, template, stack_name, params):
        """Create the stack and return its id."""
        output = self.api.create_stack(
            TemplateBody=template,
            Capabilities=[CAPABILITY_IAM],
            StackName=stack_name,
            Parameters=params.to_api(),
        )
        stack_id = output.get("StackId") or ""
        logger.debug("Cloudformation create stack call succeeded: stackId=%s", stack_id)
        return stack_id

    def delete_stack(self, stack_name):
        """Delete the stack."""
        self.api.delete_stack(StackName=stack_name)

    def update_stack(self, stack_name, params):
        """Update the stack using its previous template and return its id."""
        output = self.api.update_stack(
            Capabilities=[CAPABILITY_IAM],
            StackName=stack_name,
            Parameters=params.to_api(),
            UsePreviousTemplate=True,
        )
        stack_id = output.get("StackId") or ""
        logger.debug("Cloudformation update stack call succeeded: stackId=%s", stack_id)
        return stack_id

    def validate_stack_exists(self, stack_name):
        """Raise if the stack cannot be described; return its status."""
        return self._describe_stack(stack_name)

    def wait_until_create_complete(self, stack_name):
        """Wait until stack creation completes."""
        self.wait_until_complete(
            stack_name,
            failure_in_create_event,
            STACK_STATUS_CREATE_COMPLETE,
            CREATE_STACK_FAILURES,
            MAX_RETRIES_CREATE,
        )

    def wait_until_delete_complete(self, stack_name):
        """Wait until stack deletion completes; a vanished stack counts as deleted."""
        try:
            self.wait_until_complete(
                stack_name,
                failure_in_delete_event,
                STACK_STATUS_DELETE_COMPLETE,
                DELETE_STACK_FAILURES,
                MAX_RETRIES_DELETE,
            )
        except AwsApiError as err:
            if err.is_validation_error and "does not exist" in err.message:
                return
            raise

    def wait_until_update_complete(self, stack_name):
        """Wait until the stack update completes."""
        self.wait_until_complete(
            stack_name,
            failure_in_update_event,
            STACK_STATUS_UPDATE_COMPLETE,
            UPDATE_STACK_FAILURES,
            MAX_RETRIES_UPDATE,
        )

    def wait_until_complete(
        self, stack_name, has_failed, success_state, failure_states, max_retries
    ):
        """Poll until the stack reaches ``success_state`` or retries run out."""
        for retry in range(max_retries):
            event = self._latest_stack_event(stack_name)
            if has_failed(event):
                reason = event.get("ResourceStatusReason", "")
                raise CloudformationError(
                    f"Cloudformation failure waiting for '{success_state}'. "
                    f"Reason: '{reason}'"
                )

            status = self._describe_stack(stack_name)
            if status == success_state:
                return
            if status in failure_states:
                logger.debug("Stack creation failed. Getting first failed event")
                try:
                    failure = self._first_stack_event_with_failure(
                        stack_name, failure_states
                    )
                except Exception:  # noqa: BLE001 - diagnostic lookup only
                    pass
                else:
                    logger.error(
                        "Failure event: reason=%s resourceType=%s",
                        failure.get("ResourceStatusReason", ""),
                        failure.get("ResourceType", ""),
                    )
                raise CloudformationError(
                    f"Cloudformation failure waiting for '{success_state}'. "
                    f"State is '{status}'"
                )

            level = logging.INFO if retry % 2 == 0 else logging.DEBUG
            logger.log(level, "Cloudformation stack status: stackStatus=%s", status)
            self.sleep(DELAY_WAIT)

        raise CloudformationError("Timeout waiting for stack creation to complete")

    def _describe_events(self, stack_name, next_token=None):
        kwargs = {"StackName": stack_name}
        if next_token is not None:
            kwargs["NextToken"] = next_token
        response = self.api.describe_stack_events(**kwargs)
        events = response.get("StackEvents") or []
        if not events:
            raise CloudformationError("Could not describe stack events")
        return events, response.get("NextToken")

    def _latest_stack_event(self, stack_name):
        events, _ = self._describe_events(stack_name)
        return events[0]

    def _first_stack_event_with_failure(self, stack_name, failure_states):
        events, token = self._describe_events(stack_name)
        while token is not None:
            events, token = self._describe_events(stack_name, token)
        for event in reversed(events):
            logger.debug(
                "Parsing event: status=%s reason=%s id=%s resourceType=%s",
                event.get("ResourceStatus", ""),
                event.get("ResourceStatusReason", ""),
                event.get("EventId", ""),
                event.get("ResourceType", ""),
            )
            if event.get("ResourceStatus", "") in failure_states:
                return event
        raise CloudformationError(
            f"Unable to find failure event in stack '{stack_name}'"
        )

    def _describe_stack(self, stack_name):
        output = self.api.describe_stacks(StackName=stack_name)
        stacks = output.get("Stacks") or []
        if not stacks:
            raise CloudformationError(f"Could not describe stack '{stack_name}'")
        return stacks[0].get("StackStatus") or ""