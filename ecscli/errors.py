"""Errors reported by the AWS service APIs."""

VALIDATION_ERROR_CODE = "ValidationError"


class AwsApiError(Exception):
    """An error returned by an AWS API, carrying its error code and message."""

    def __init__(self, code, message):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message

    @property
    def is_validation_error(self):
        """True when the error code is a validation error."""
        return self.code == VALIDATION_ERROR_CODE