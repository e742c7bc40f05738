"""Parameters for the cluster CloudFormation stack."""

from dataclasses import dataclass

PARAMETER_KEY_ASG_MAX_SIZE = "AsgMaxSize"
PARAMETER_KEY_VPC_AZS = "VpcAvailabilityZones"
PARAMETER_KEY_SECURITY_GROUP = "SecurityGroup"
PARAMETER_KEY_SOURCE_CIDR = "SourceCidr"
PARAMETER_KEY_ECS_PORT = "EcsPort"
PARAMETER_KEY_SUBNET_IDS = "SubnetIds"
PARAMETER_KEY_VPC_ID = "VpcId"
PARAMETER_KEY_INSTANCE_TYPE = "EcsInstanceType"
PARAMETER_KEY_KEY_PAIR_NAME = "KeyName"
PARAMETER_KEY_CLUSTER = "EcsCluster"
PARAMETER_KEY_AMI_ID = "EcsAmiId"

REQUIRED_PARAMETER_NAMES = (
    PARAMETER_KEY_KEY_PAIR_NAME,
    PARAMETER_KEY_CLUSTER,
    PARAMETER_KEY_AMI_ID,
)

PARAMETER_KEY_NAMES = (
    PARAMETER_KEY_ASG_MAX_SIZE,
    PARAMETER_KEY_VPC_AZS,
    PARAMETER_KEY_SECURITY_GROUP,
    PARAMETER_KEY_SOURCE_CIDR,
    PARAMETER_KEY_ECS_PORT,
    PARAMETER_KEY_SUBNET_IDS,
    PARAMETER_KEY_VPC_ID,
    PARAMETER_KEY_INSTANCE_TYPE,
    PARAMETER_KEY_KEY_PAIR_NAME,
    PARAMETER_KEY_CLUSTER,
    PARAMETER_KEY_AMI_ID,
)


class ParameterNotFoundError(LookupError):
    """Raised when a stack parameter has not been set."""

    def __init__(self, key=None):
        super().__init__("Parameter not found")
        self.key = key


@dataclass
class StackParameter:
    """A single CloudFormation stack parameter."""

    key: str
    value: str | None = None
    use_previous_value: bool | None = None

    def to_api(self):
        """Return the parameter in the CloudFormation API shape."""
        result = {"ParameterKey": self.key}
        if self.value is not None:
            result["ParameterValue"] = self.value
        if self.use_previous_value is not None:
            result["UsePreviousValue"] = self.use_previous_value
        return result

    def validate(self):
        """Raise ValueError unless a value or use-previous-value is set."""
        if not self.value and not self.use_previous_value:
            raise ValueError(
                f"ParameterValue and UsePreviousValue not set for parameter key '{self.key}'"
            )


class CfnStackParams:
    """Ordered collection of stack parameters used to create or update the stack."""

    def __init__(self):
        self.values = {}
        self.parameters = []

    @classmethod
    def for_update(cls):
        """Parameters for an update: every known key keeps its previous value."""
        params = cls()
        for key in PARAMETER_KEY_NAMES:
            params.add_with_use_previous_value(key, True)
        return params

    def _find_or_create(self, key):
        try:
            return self.get_parameter(key)
        except ParameterNotFoundError:
            param = StackParameter(key)
            self.parameters.append(param)
            return param

    def add(self, key, value):
        """Set an explicit value for a key, overwriting any earlier one."""
        param = self._find_or_create(key)
        param.value = value
        param.use_previous_value = False
        self.values[key] = value

    def add_with_use_previous_value(self, key, use_previous_value):
        """Set a key's use-previous-value flag, as needed when updating the stack."""
        param = self._find_or_create(key)
        param.use_previous_value = use_previous_value
        self.values[key] = ""

    def get_parameter(self, key):
        """Return the parameter for a key; raise ParameterNotFoundError if unset."""
        if key not in self.values:
            raise ParameterNotFoundError(key)
        for param in self.parameters:
            if param.key == key:
                return param
        raise RuntimeError(f"Invalid state: Could not find parameter key for {key}")

    def validate(self):
        """Check required keys are present and every parameter is properly set."""
        for key in REQUIRED_PARAMETER_NAMES:
            self.get_parameter(key).validate()
        for param in self.parameters:
            if param.key not in REQUIRED_PARAMETER_NAMES:
                param.validate()

    def to_api(self):
        """Return all parameters in the CloudFormation API shape."""
        return [param.to_api() for param in self.parameters]