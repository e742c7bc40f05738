import pytest

from ecscli.errors import VALIDATION_ERROR_CODE, AwsApiError


def test_keeps_code_and_message():
    err = AwsApiError("ValidationError", "Stack with id foo does not exist")
    assert err.code == "ValidationError"
    assert err.message == "Stack with id foo does not exist"
    assert "does not exist" in str(err)
    assert err.code in str(err)


def test_validation_error_detection():
    assert AwsApiError(VALIDATION_ERROR_CODE, "bad").is_validation_error
    assert not AwsApiError("Throttling", "slow down").is_validation_error


@pytest.mark.parametrize(
    "code, message, expected",
    [
        ("ValidationError", "Stack does not exist", True),
        ("ValidationError", "", True),
        ("AccessDenied", "Stack does not exist", False),
    ],
)
def test_validation_depends_on_code_only(code, message, expected):
    assert AwsApiError(code, message).is_validation_error is expected