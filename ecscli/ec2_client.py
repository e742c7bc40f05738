"""Client for the parts of the EC2 API the tool uses."""


class NoReservationsError(LookupError):
    """Raised when an EC2 describe call returns no reservations."""

    def __init__(self):
        super().__init__("No EC2 reservations found")


class EC2Client:
    """Wraps an EC2 API object exposing describe_instances(InstanceIds=...)."""

    def __init__(self, api):
        self.api = api

    def describe_instances(self, instance_ids):
        """Return a mapping of instance id to instance description."""
        instance_ids = list(instance_ids)
        if not instance_ids:
            return {}
        output = self.api.describe_instances(InstanceIds=instance_ids)
        reservations = output.get("Reservations")
        if not reservations:
            raise NoReservationsError()
        return {
            instance["InstanceId"]: instance
            for reservation in reservations
            for instance in reservation.get("Instances") or ()
            if instance.get("InstanceId") is not None
        }