# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Pet application stack: image registry, load balancer, Fargate service and
the CodeBuild pipeline that builds the image, all placed inside the
network exported by the base stack.
"""
from typing import Any, Dict
from pydantic import BaseModel, ConfigDict

from ..MANAGERS.stack import Stack
from ..MODELS.stack_exports import BaseStackExports, ListValue, StrValue

ECS_TASK_EXECUTION_POLICY = "arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy"
ECR_FULL_ACCESS_POLICY = "arn:aws:iam::aws:policy/AmazonEC2ContainerRegistryFullAccess"
CODEBUILD_ADMIN_POLICY = "arn:aws:iam::aws:policy/AWSCodeBuildAdminAccess"

CODEBUILD_ACTIONS = [
    "cloudwatch:*",
    "logs:CreateLogGroup",
    "logs:CreateLogStream",
    "logs:PutLogEvents",
    "s3:PutObject",
    "s3:GetObject",
    "s3:GetObjectVersion",
    "s3:GetBucketAcl",
    "s3:GetBucketLocation",
    # network interface management for builds running inside the VPC
    "ec2:CreateNetworkInterface",
    "ec2:DescribeDhcpOptions",
    "ec2:DescribeNetworkInterfaces",
    "ec2:DeleteNetworkInterface",
    "ec2:DescribeSubnets",
    "ec2:DescribeSecurityGroups",
    "ec2:DescribeVpcs",
    "ec2:CreateNetworkInterfacePermission",
    # aws ecs update-service
    "ecs:UpdateService",
]


class PetAppStackConfig(BaseModel):
    """
    Configuration of the pet application stack. Every network field comes
    from the base stack's exports.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    profile: str
    region: str = "us-east-1"

    vpc_id: StrValue
    public_security_group_id: StrValue
    app_security_group_id: StrValue
    public_subnets: ListValue
    app_subnets: ListValue
    ecs_cluster_name: StrValue

    repository: str
    branch: str

    container_name: str = "petapp"
    image: str = "petapp"
    container_port: int = 3456
    desired_count: int = 1
    cpu: str = "256"
    memory: str = "512"

    @classmethod
    def wiring(cls, exports: BaseStackExports) -> Dict[str, Any]:
        """
        Maps base stack exports onto the network fields of this config.
        """
        return {
            "vpc_id": exports.vpc_id,
            "public_security_group_id": exports.public_security_group_id,
            "app_security_group_id": exports.app_security_group_id,
            "public_subnets": exports.public_subnets,
            "app_subnets": exports.private_subnets,
            "ecs_cluster_name": exports.ecs_cluster_name,
        }


def _assume_role_statement(service: str) -> Dict[str, Any]:
    return {
        "effect": "Allow",
        "principals": [{"type": "Service", "identifiers": [service]}],
        "actions": ["sts:AssumeRole"],
    }


class PetAppStack(Stack):
    """
    Application stack deployed into the base network.
    """
    config_model = PetAppStackConfig

    def build(self, config: PetAppStackConfig):
        self.declare("provider", "provider", {"region": config.region, "profile": config.profile})

        repository = self.declare("repository", "ecr_repository", {
            "name": "repository",
            "image_tag_mutability": "MUTABLE",
        })
        self.declare("ecrPolicy", "ecr_repository_policy", {
            "repository": repository.ref("name"),
            "policy": {
                "Version": "2012-10-17",
                "Statement": [{
                    "Sid": "CodeBuildAccessPrincipal",
                    "Effect": "Allow",
                    "Principal": {"Service": "codebuild.amazonaws.com"},
                    "Action": [
                        "ecr:GetDownloadUrlForLayer",
                        "ecr:BatchGetImage",
                        "ecr:BatchCheckLayerAvailability",
                    ],
                }],
            },
        })

        # load balancer lives in the public tier
        target_group = self.declare("targetGroup", "lb_target_group", {
            "name": "myTargetGroup",
            "port": config.container_port,
            "protocol": "HTTP",
            "target_type": "ip",
            "vpc_id": config.vpc_id,
        })
        load_balancer = self.declare("loadBalancer", "alb", {
            "name": "myAlb",
            "internal": False,
            "load_balancer_type": "application",
            "subnets": config.public_subnets,
            "security_groups": [config.public_security_group_id],
        })
        self.declare("listener", "lb_listener", {
            "load_balancer_arn": load_balancer.ref("arn"),
            "port": 80,
            "protocol": "HTTP",
            "default_action": [{"type": "forward", "target_group_arn": target_group.ref("arn")}],
        })

        execution_policy_document = self.declare(
            "ecsTaskExecutionRoleAssumeRolePolicyDocument", "data_iam_policy_document",
            {"statement": [_assume_role_statement("ecs-tasks.amazonaws.com")]},
        )
        execution_role = self.declare("ecsTaskExecutionRole", "iam_role", {
            "name": f"{self.name}-execution",
            "assume_role_policy": execution_policy_document.ref("json"),
        })
        self.declare("ecsTaskExecutionRoleRolePolicyAttachment", "iam_role_policy_attachment", {
            "role": execution_role.ref("name"),
            "policy_arn": ECS_TASK_EXECUTION_POLICY,
        })

        task_definition = self.declare("taskDefinition", "ecs_task_definition", {
            "family": self.name,
            "requires_compatibilities": ["FARGATE"],
            "network_mode": "awsvpc",
            "cpu": config.cpu,
            "memory": config.memory,
            "execution_role_arn": execution_role.ref("arn"),
            "container_definitions": [{
                "name": config.container_name,
                "image": config.image,
                "cpu": 10,
                "memory": int(config.memory),
                "essential": True,
                "environment": [{"name": "PORT", "value": str(config.container_port)}],
                "portMappings": [{"containerPort": config.container_port, "hostPort": config.container_port}],
            }],
        })

        # service tasks live in the app tier
        self.declare("service", "ecs_service", {
            "name": "ecsService",
            "launch_type": "FARGATE",
            "cluster": config.ecs_cluster_name,
            "desired_count": config.desired_count,
            "task_definition": task_definition.ref("arn"),
            "force_new_deployment": True,
            "network_configuration": {
                "subnets": config.public_subnets,
                "assign_public_ip": True,
                "security_groups": [config.app_security_group_id],
            },
            "load_balancer": [{
                "container_port": config.container_port,
                "container_name": config.container_name,
                "target_group_arn": target_group.ref("arn"),
            }],
        })

        self.declare("current", "data_caller_identity")

        codebuild_policy_document = self.declare(
            "codebuildServiceRoleAssumeRolePolicyDocument", "data_iam_policy_document",
            {"statement": [_assume_role_statement("codebuild.amazonaws.com")]},
        )
        codebuild_role = self.declare("codebuildServiceRole", "iam_role", {
            "name": f"{self.name}-codebuild-service-role",
            "assume_role_policy": codebuild_policy_document.ref("json"),
        })
        codebuild_policy = self.declare("codebuildServiceRolePolicy", "iam_policy", {
            "policy": {
                "Version": "2012-10-17",
                "Statement": [{"Effect": "Allow", "Action": list(CODEBUILD_ACTIONS), "Resource": ["*"]}],
            },
        })

        attachments = [
            self.declare(node_name, "iam_role_policy_attachment", {
                "role": codebuild_role.ref("name"),
                "policy_arn": policy_arn,
            })
            for node_name, policy_arn in (
                ("codebuildServiceRoleRolePolicyAttachment", codebuild_policy.ref("arn")),
                ("codebuildServiceRoleRolePolicyAttachmentAmazonEC2ContainerRegistryFullAccess",
                 ECR_FULL_ACCESS_POLICY),
                ("codebuildServiceRoleRolePolicyAttachmentAWSCodeBuildAdminAccess", CODEBUILD_ADMIN_POLICY),
            )
        ]

        # builds run in the app tier so they can reach private resources
        project = self.declare("project", "codebuild_project", {
            "name": f"{self.name}-build-pipeline",
            "service_role": codebuild_role.ref("arn"),
            "artifacts": {"type": "NO_ARTIFACTS"},
            "environment": {
                "compute_type": "BUILD_GENERAL1_SMALL",
                "type": "LINUX_CONTAINER",
                "image": "aws/codebuild/amazonlinux2-x86_64-standard:3.0",
                "image_pull_credentials_type": "CODEBUILD",
                "privileged_mode": True,
            },
            "source": {
                "type": "GITHUB",
                "location": f"https://github.com/{config.repository}.git",
                "git_clone_depth": 1,
                "git_submodules_config": {"fetch_submodules": True},
                "report_build_status": True,
                "buildspec": "",
            },
            "vpc_config": {
                "vpc_id": config.vpc_id,
                "security_group_ids": [config.app_security_group_id],
                "subnets": config.app_subnets,
            },
        }, depends_on=attachments)

        self.declare("webhook", "codebuild_webhook", {
            "project_name": project.ref("name"),
            "build_type": "BUILD",
            "filter_group": [{
                "filter": [
                    {"type": "EVENT", "pattern": "PUSH"},
                    {"type": "HEAD_REF", "pattern": config.branch},
                ],
            }],
        })

        self.output("lb_dns_name", load_balancer.ref("dns_name"))
