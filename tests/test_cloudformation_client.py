import pytest

from ecscli.cloudformation_client import (
    CREATE_STACK_FAILURES,
    DELAY_WAIT,
    DELETE_STACK_FAILURES,
    UPDATE_STACK_FAILURES,
    CloudformationClient,
    CloudformationError,
    failure_in_create_event,
    failure_in_delete_event,
    failure_in_update_event,
)
from ecscli.errors import AwsApiError
from ecscli.stack_params import CfnStackParams


class _Script:
    """Responses consumed in order, or one response returned every time."""

    def __init__(self, responses=None, always=None):
        self.responses = list(responses or [])
        self.always = always
        self.calls = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        if self.responses:
            result = self.responses.pop(0)
        elif self.always is not None:
            result = self.always
        else:
            raise AssertionError("unexpected call")
        if isinstance(result, Exception):
            raise result
        return result


class FakeCfn:
    def __init__(self, events=None, stacks=None):
        self.describe_stack_events = events or _Script()
        self.describe_stacks = stacks or _Script()
        self.created = []
        self.updated = []
        self.deleted = []

    def create_stack(self, **kwargs):
        self.created.append(kwargs)
        return {"StackId": "stack-id-1"}

    def update_stack(self, **kwargs):
        self.updated.append(kwargs)
        return {"StackId": "stack-id-2"}

    def delete_stack(self, **kwargs):
        self.deleted.append(kwargs)
        return {}


def stack_event(status):
    return {"StackEvents": [{"ResourceStatus": status}]}


def stacks_output(status):
    return {"Stacks": [{"StackStatus": status}]}


class Sleeps:
    def __init__(self):
        self.delays = []

    def __call__(self, delay):
        self.delays.append(delay)


def make_client(events=None, stacks=None):
    api = FakeCfn(events, stacks)
    sleeps = Sleeps()
    return CloudformationClient(api, sleeps), api, sleeps


def test_wait_until_create_completes():
    client, api, sleeps = make_client(
        _Script([stack_event("CREATE_COMPLETE")]),
        _Script([stacks_output("CREATE_COMPLETE")]),
    )
    assert client.wait_until_create_complete("") is None
    assert api.describe_stacks.calls == [{"StackName": ""}]
    assert sleeps.delays == []


def test_wait_until_create_complete_fails():
    client, _, sleeps = make_client(
        _Script([stack_event("CREATE_IN_PROGRESS"), stack_event("CREATE_FAILED")]),
        _Script([stacks_output("CREATE_IN_PROGRESS")]),
    )
    with pytest.raises(CloudformationError, match="CREATE_COMPLETE"):
        client.wait_until_create_complete("")
    assert sleeps.delays == [DELAY_WAIT]


def test_wait_until_delete_completes():
    client, _, _ = make_client(
        _Script([stack_event("DELETE_COMPLETE")]),
        _Script([stacks_output("DELETE_COMPLETE")]),
    )
    assert client.wait_until_delete_complete("") is None


def test_wait_until_delete_complete_fails():
    client, _, _ = make_client(
        _Script([stack_event("DELETE_IN_PROGRESS"), stack_event("DELETE_FAILED")]),
        _Script([stacks_output("DELETE_IN_PROGRESS")]),
    )
    with pytest.raises(CloudformationError, match="DELETE_COMPLETE"):
        client.wait_until_delete_complete("")


def test_wait_until_delete_treats_missing_stack_as_deleted():
    missing = AwsApiError("ValidationError", "Stack with id x does not exist")
    client, _, _ = make_client(_Script([missing]))
    assert client.wait_until_delete_complete("x") is None


def test_wait_until_delete_propagates_other_api_errors():
    other = AwsApiError("AccessDenied", "no")
    client, _, _ = make_client(_Script([other]))
    with pytest.raises(AwsApiError) as info:
        client.wait_until_delete_complete("x")
    assert info.value.code == "AccessDenied"


def test_wait_until_update_completes():
    client, _, sleeps = make_client(
        _Script([stack_event("UPDATE_IN_PROGRESS"), stack_event("UPDATE_COMPLETE")]),
        _Script(
            [stacks_output("UPDATE_IN_PROGRESS"), stacks_output("UPDATE_COMPLETE")]
        ),
    )
    assert client.wait_until_update_complete("") is None
    assert sleeps.delays == [DELAY_WAIT]


def test_wait_until_update_complete_fails():
    client, _, _ = make_client(
        _Script([stack_event("UPDATE_IN_PROGRESS"), stack_event("UPDATE_FAILED")]),
        _Script([stacks_output("UPDATE_IN_PROGRESS")]),
    )
    with pytest.raises(CloudformationError, match="UPDATE_COMPLETE"):
        client.wait_until_update_complete("")


@pytest.mark.parametrize(
    "has_failed, failures",
    [
        (failure_in_create_event, CREATE_STACK_FAILURES),
        (failure_in_delete_event, DELETE_STACK_FAILURES),
        (failure_in_update_event, UPDATE_STACK_FAILURES),
    ],
)
def test_wait_describe_events_error(has_failed, failures):
    client, _, _ = make_client(_Script(always=RuntimeError("boom")))
    with pytest.raises(RuntimeError, match="boom"):
        client.wait_until_complete("", has_failed, "", failures, 10)


@pytest.mark.parametrize(
    "has_failed, failures",
    [
        (failure_in_create_event, CREATE_STACK_FAILURES),
        (failure_in_delete_event, DELETE_STACK_FAILURES),
        (failure_in_update_event, UPDATE_STACK_FAILURES),
    ],
)
def test_wait_exhaust_retries(has_failed, failures):
    client, _, sleeps = make_client(
        _Script(always=stack_event("CREATE_IN_PROGRESS")),
        _Script(always=stacks_output("CREATE_IN_PROGRESS")),
    )
    with pytest.raises(CloudformationError, match="Timeout"):
        client.wait_until_complete("", has_failed, "", failures, 10)
    assert sleeps.delays == [DELAY_WAIT] * 10


def test_wait_describe_stack_failure():
    events = {
        "StackEvents": [
            {"ResourceStatus": "CREATE_IN_PROGRESS"},
            {"ResourceStatus": "CREATE_IN_PROGRESS"},
            {
                "ResourceStatus": "CREATE_FAILED",
                "ResourceStatusReason": "do you really wanna know?",
            },
            {"ResourceStatus": "CREATE_IN_PROGRESS"},
        ]
    }
    client, api, _ = make_client(
        _Script(always=events), _Script([stacks_output("CREATE_FAILED")])
    )
    with pytest.raises(CloudformationError, match="State is 'CREATE_FAILED'"):
        client.wait_until_complete(
            "", failure_in_create_event, "", CREATE_STACK_FAILURES, 10
        )
    assert len(api.describe_stack_events.calls) == 2


def test_empty_stack_events_is_an_error():
    client, _, _ = make_client(_Script([{"StackEvents": []}]))
    with pytest.raises(CloudformationError, match="Could not describe stack events"):
        client.wait_until_create_complete("s")


def test_failure_in_create_event():
    assert failure_in_create_event({"ResourceStatus": "CREATE_IN_PROGRESS"}) is False
    assert failure_in_create_event({"ResourceStatus": "CREATE_FAILED"}) is True
    assert failure_in_create_event({"ResourceStatus": "CREATE_COMPLETE"}) is False


def test_failure_in_delete_event():
    assert failure_in_delete_event({"ResourceStatus": "CREATE_IN_PROGRESS"}) is False
    assert failure_in_delete_event({"ResourceStatus": "DELETE_FAILED"}) is True
    assert failure_in_delete_event({"ResourceStatus": "DELETE_COMPLETE"}) is False


def test_failure_in_update_event():
    assert failure_in_update_event({"ResourceStatus": "UPDATE_IN_PROGRESS"}) is False
    assert failure_in_update_event({"ResourceStatus": "UPDATE_FAILED"}) is True
    assert failure_in_update_event({"ResourceStatus": "UPDATE_COMPLETE"}) is False


def test_validate_stack_exists():
    client, _, _ = make_client(
        stacks=_Script([RuntimeError("describe-stacks error"), stacks_output("")])
    )
    with pytest.raises(RuntimeError, match="describe-stacks error"):
        client.validate_stack_exists("")
    assert client.validate_stack_exists("") == ""


def test_validate_stack_exists_with_no_stacks():
    client, _, _ = make_client(stacks=_Script([{"Stacks": []}]))
    with pytest.raises(CloudformationError, match="Could not describe stack 'name'"):
        client.validate_stack_exists("name")


def test_create_stack_sends_template_and_parameters():
    client, api, _ = make_client()
    params = CfnStackParams()
    params.add("EcsCluster", "default")
    assert client.create_stack("{}", "my-stack", params) == "stack-id-1"
    assert api.created == [
        {
            "TemplateBody": "{}",
            "Capabilities": ["CAPABILITY_IAM"],
            "StackName": "my-stack",
            "Parameters": [
                {
                    "ParameterKey": "EcsCluster",
                    "ParameterValue": "default",
                    "UsePreviousValue": False,
                }
            ],
        }
    ]


def test_update_stack_uses_previous_template():
    client, api, _ = make_client()
    params = CfnStackParams()
    params.add_with_use_previous_value("AsgMaxSize", True)
    assert client.update_stack("my-stack", params) == "stack-id-2"
    assert api.updated[0]["UsePreviousTemplate"] is True
    assert api.updated[0]["Parameters"] == [
        {"ParameterKey": "AsgMaxSize", "UsePreviousValue": True}
    ]


def test_delete_stack_passes_name():
    client, api, _ = make_client()
    client.delete_stack("my-stack")
    assert api.deleted == [{"StackName": "my-stack"}]