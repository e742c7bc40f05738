"""CloudFormation template for the resources an ECS cluster needs."""

import copy
import json

TEMPLATE_FORMAT_VERSION = "2010-09-09"

_LARGE_SIZES = ("large", "xlarge", "2xlarge", "4xlarge", "8xlarge")
_STORAGE_SIZES = ("xlarge", "2xlarge", "4xlarge", "8xlarge")

_INSTANCE_FAMILIES = (
    ("t2", ("nano", "micro", "small", "medium", "large")),
    ("m3", ("medium", "large", "xlarge", "2xlarge")),
    ("m4", ("large", "xlarge", "2xlarge", "4xlarge", "10xlarge")),
    ("c4", _LARGE_SIZES),
    ("c3", _LARGE_SIZES),
    ("r3", _LARGE_SIZES),
    ("i2", _STORAGE_SIZES),
    ("g2", ("2xlarge", "8xlarge")),
    ("d2", _STORAGE_SIZES),
)

INSTANCE_TYPES = tuple(
    f"{family}.{size}" for family, sizes in _INSTANCE_FAMILIES for size in sizes
)

_VPC = "CreateVpcResources"


def _ref(name):
    return {"Ref": name}


def _equals_empty(value):
    return {"Fn::Equals": [value, ""]}


def _not(condition):
    return {"Fn::Not": [condition]}


def _if(condition, when_true, when_false):
    return {"Fn::If": [condition, when_true, when_false]}


def _join(separator, parts):
    return {"Fn::Join": [separator, parts]}


def _cidr(map_key):
    return {"Fn::FindInMap": ["VpcCidrs", map_key, "cidr"]}


def _param(kind, description, default, **extra):
    return {"Type": kind, "Description": description, "Default": default, **extra}


def _optional(text):
    return "Optional - " + text


def _resource(kind, properties=None, condition=None, depends_on=None):
    resource = {}
    if condition is not None:
        resource["Condition"] = condition
    if depends_on is not None:
        resource["DependsOn"] = depends_on
    resource["Type"] = kind
    if properties is not None:
        resource["Properties"] = properties
    return resource


def _subnet(map_key, az_index):
    zone = _if(
        "UseSpecifiedVpcAvailabilityZones",
        {"Fn::Select": [az_index, _ref("VpcAvailabilityZones")]},
        {"Fn::Select": [az_index, {"Fn::GetAZs": _ref("AWS::Region")}]},
    )
    return _resource(
        "AWS::EC2::Subnet",
        {"VpcId": _ref("Vpc"), "CidrBlock": _cidr(map_key), "AvailabilityZone": zone},
        condition=_VPC,
    )


def _route_association(subnet):
    return _resource(
        "AWS::EC2::SubnetRouteTableAssociation",
        {"SubnetId": _ref(subnet), "RouteTableId": _ref("RouteViaIgw")},
        condition=_VPC,
    )


def _launch_configuration(condition, with_key_pair):
    properties = {
        "ImageId": _ref("EcsAmiId"),
        "InstanceType": _ref("EcsInstanceType"),
        "AssociatePublicIpAddress": True,
        "IamInstanceProfile": _ref("EcsInstanceProfile"),
    }
    if with_key_pair:
        properties["KeyName"] = _ref("KeyName")
    properties["SecurityGroups"] = _if(
        "CreateSecurityGroup", [_ref("EcsSecurityGroup")], [_ref("SecurityGroup")]
    )
    user_data = ["#!/bin/bash\n", "echo ECS_CLUSTER=", _ref("EcsCluster"), " >> /etc/ecs/ecs.config\n"]
    properties["UserData"] = {"Fn::Base64": _join("", user_data)}
    return _resource("AWS::AutoScaling::LaunchConfiguration", properties, condition=condition)


_PARAMETERS = {
    "EcsAmiId": _param("String", "ECS EC2 AMI id", ""),
    "EcsInstanceType": _param(
        "String",
        "ECS EC2 instance type",
        "t2.micro",
        AllowedValues=list(INSTANCE_TYPES),
        ConstraintDescription="must be a valid EC2 instance type.",
    ),
    "KeyName": _param(
        "AWS::EC2::KeyPair::KeyName",
        _optional("Name of an existing EC2 KeyPair to enable SSH access to the ECS instances"),
        "",
    ),
    "VpcId": _param(
        "String",
        _optional("VPC Id of existing VPC. Leave blank to have a new VPC created"),
        "",
        AllowedPattern="^(?:vpc-[0-9a-f]{8}|)$",
        ConstraintDescription=(
            "VPC Id must begin with 'vpc-' or leave blank to have a new VPC created"
        ),
    ),
    "SubnetIds": _param(
        "CommaDelimitedList",
        _optional(
            "Comma separated list of two (2) existing VPC Subnet Ids where ECS "
            "instances will run.  Required if setting VpcId."
        ),
        "",
    ),
    "AsgMaxSize": _param(
        "Number",
        "Maximum size and initial Desired Capacity of ECS Auto Scaling Group",
        "1",
    ),
    "SecurityGroup": _param(
        "String",
        _optional(
            "Existing security group to associate the container instances. "
            "Creates one by default."
        ),
        "",
    ),
    "SourceCidr": _param(
        "String", _optional("CIDR/IP range for EcsPort - defaults to 0.0.0.0/0"), "0.0.0.0/0"
    ),
    "EcsPort": _param(
        "String",
        _optional("Security Group port to open on ECS instances - defaults to port 80"),
        "80",
    ),
    "VpcAvailabilityZones": _param(
        "CommaDelimitedList",
        _optional(
            "Comma-delimited list of VPC availability zones in which to create "
            "subnets.  Required if setting VpcId."
        ),
        "",
    ),
    "EcsCluster": _param("String", "ECS Cluster Name", "default"),
}

_CONDITIONS = {
    _VPC: _equals_empty(_ref("VpcId")),
    "CreateSecurityGroup": _equals_empty(_ref("SecurityGroup")),
    "CreateEC2LCWithKeyPair": _not(_equals_empty(_ref("KeyName"))),
    "CreateEC2LCWithoutKeyPair": _equals_empty(_ref("KeyName")),
    "UseSpecifiedVpcAvailabilityZones": _not(
        _equals_empty(_join("", _ref("VpcAvailabilityZones")))
    ),
}

_ASSUME_ROLE_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": {"Service": ["ec2.amazonaws.com"]},
            "Action": ["sts:AssumeRole"],
        }
    ],
}

_INGRESS = {
    "IpProtocol": "tcp",
    "FromPort": _ref("EcsPort"),
    "ToPort": _ref("EcsPort"),
    "CidrIp": _ref("SourceCidr"),
}

_ASG_NAME_TAG = {
    "Key": "Name",
    "Value": _join("", ["ECS Instance - ", _ref("AWS::StackName")]),
    "PropagateAtLaunch": "true",
}

_RESOURCES = {
    "Vpc": _resource("AWS::EC2::VPC", {"CidrBlock": _cidr("vpc")}, condition=_VPC),
    "PubSubnetAz1": _subnet("pubsubnet1", "0"),
    "PubSubnetAz2": _subnet("pubsubnet2", "1"),
    "InternetGateway": _resource("AWS::EC2::InternetGateway", condition=_VPC),
    "AttachGateway": _resource(
        "AWS::EC2::VPCGatewayAttachment",
        {"VpcId": _ref("Vpc"), "InternetGatewayId": _ref("InternetGateway")},
        condition=_VPC,
    ),
    "RouteViaIgw": _resource("AWS::EC2::RouteTable", {"VpcId": _ref("Vpc")}, condition=_VPC),
    "PublicRouteViaIgw": _resource(
        "AWS::EC2::Route",
        {
            "RouteTableId": _ref("RouteViaIgw"),
            "DestinationCidrBlock": "0.0.0.0/0",
            "GatewayId": _ref("InternetGateway"),
        },
        condition=_VPC,
        depends_on="AttachGateway",
    ),
    "PubSubnet1RouteTableAssociation": _route_association("PubSubnetAz1"),
    "PubSubnet2RouteTableAssociation": _route_association("PubSubnetAz2"),
    "EcsSecurityGroup": _resource(
        "AWS::EC2::SecurityGroup",
        {
            "GroupDescription": "ECS Allowed Ports",
            "VpcId": _if(_VPC, _ref("Vpc"), _ref("VpcId")),
            "SecurityGroupIngress": [_INGRESS],
        },
        condition="CreateSecurityGroup",
    ),
    "EcsInstancePolicy": _resource(
        "AWS::IAM::Role",
        {
            "AssumeRolePolicyDocument": _ASSUME_ROLE_POLICY,
            "Path": "/",
            "ManagedPolicyArns": [
                "arn:aws:iam::aws:policy/service-role/AmazonEC2ContainerServiceforEC2Role"
            ],
        },
    ),
    "EcsInstanceProfile": _resource(
        "AWS::IAM::InstanceProfile", {"Path": "/", "Roles": [_ref("EcsInstancePolicy")]}
    ),
    "EcsInstanceLc": _launch_configuration("CreateEC2LCWithKeyPair", with_key_pair=True),
    "EcsInstanceLcWithoutKeyPair": _launch_configuration(
        "CreateEC2LCWithoutKeyPair", with_key_pair=False
    ),
    "EcsInstanceAsg": _resource(
        "AWS::AutoScaling::AutoScalingGroup",
        {
            "VPCZoneIdentifier": _if(
                _VPC,
                [_join(",", [_ref("PubSubnetAz1"), _ref("PubSubnetAz2")])],
                _ref("SubnetIds"),
            ),
            "LaunchConfigurationName": _if(
                "CreateEC2LCWithKeyPair",
                _ref("EcsInstanceLc"),
                _ref("EcsInstanceLcWithoutKeyPair"),
            ),
            "MinSize": "1",
            "MaxSize": _ref("AsgMaxSize"),
            "DesiredCapacity": _ref("AsgMaxSize"),
            "Tags": [_ASG_NAME_TAG],
        },
    ),
}

_TEMPLATE = {
    "AWSTemplateFormatVersion": TEMPLATE_FORMAT_VERSION,
    "Description": (
        "AWS CloudFormation template to create resources required to run tasks "
        "on an ECS cluster."
    ),
    "Mappings": {
        "VpcCidrs": {
            "vpc": {"cidr": "10.0.0.0/16"},
            "pubsubnet1": {"cidr": "10.0.0.0/24"},
            "pubsubnet2": {"cidr": "10.0.1.0/24"},
        }
    },
    "Parameters": _PARAMETERS,
    "Conditions": _CONDITIONS,
    "Resources": _RESOURCES,
}


def template_document():
    """Return a fresh copy of the template as a dictionary."""
    return copy.deepcopy(_TEMPLATE)


def get_template():
    """Return the stack template as a JSON document."""
    return json.dumps(_TEMPLATE, indent=2)