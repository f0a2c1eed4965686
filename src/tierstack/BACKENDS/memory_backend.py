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
In-memory provisioning backend.

Fabricates deterministic identifiers and outputs instead of calling a cloud
API. Used by the CLI for dry runs and by the test suite.
"""
import hashlib
import json
from typing import Any, Dict, Iterable, List, Tuple

from .provisioning_backend import ProvisioningBackend
from ..MODELS.errors import RealizationError
from ..MODELS.resource_node import NodeDeclaration

# resource_type -> identifier prefix
ID_PREFIXES = {
    "vpc": "vpc",
    "security_group": "sg",
    "instance": "i",
    "ecs_cluster": "cluster",
    "ecs_service": "svc",
    "ecs_task_definition": "td",
    "alb": "alb",
    "lb_target_group": "tg",
    "lb_listener": "lsn",
    "ecr_repository": "repo",
    "iam_role": "role",
    "iam_policy": "policy",
    "dynamodb_table": "table",
    "codebuild_project": "project",
}


class InMemoryBackend(ProvisioningBackend):
    """
    Keeps realized resources in a dictionary keyed by ``stack/name``.
    """
    def __init__(self, fail_on: Iterable[str] = (), region: str = "us-east-1",
                 account_id: str = "123456789012"):
        """
        :param fail_on: Node names (``name`` or ``stack/name``) whose realization fails.
        :param region: Region used in fabricated ARNs.
        :param account_id: Account used in fabricated ARNs.
        """
        self.fail_on = set(fail_on)
        self.region = region
        self.account_id = account_id
        self.state: Dict[str, Dict[str, Any]] = {}
        self.history: List[Tuple[str, str]] = []

    def realize(self, declaration: NodeDeclaration) -> Dict[str, Any]:
        key = f"{declaration.stack}/{declaration.name}"
        self.history.append(("realize", key))

        if key in self.fail_on or declaration.name in self.fail_on:
            raise RealizationError(
                f"backend rejected {declaration.resource_type}",
                stack=declaration.stack,
                node=declaration.name,
            )
        if key in self.state:
            raise RealizationError("resource already exists", stack=declaration.stack, node=declaration.name)

        outputs = self._materialize(key, declaration)
        self.state[key] = outputs
        return outputs

    def destroy(self, declaration: NodeDeclaration):
        key = f"{declaration.stack}/{declaration.name}"
        self.history.append(("destroy", key))
        if key not in self.state:
            raise RealizationError("resource does not exist", stack=declaration.stack, node=declaration.name)
        del self.state[key]

    def _materialize(self, key: str, declaration: NodeDeclaration) -> Dict[str, Any]:
        """
        Builds the output attributes of a node: its inputs echoed back, plus
        an identifier, an ARN and a few type specific attributes.
        """
        rtype = declaration.resource_type
        digest = _digest(key)
        resource_id = f"{ID_PREFIXES.get(rtype, rtype.replace('_', '-'))}-{digest}"

        outputs = dict(declaration.inputs)
        outputs["id"] = resource_id
        outputs[f"{rtype}_id"] = resource_id
        outputs["arn"] = f"arn:aws:{rtype.split('_')[0]}:{self.region}:{self.account_id}:{rtype}/{declaration.name}"

        # subnet CIDR lists come back as subnet identifiers
        for name, value in declaration.inputs.items():
            if name.endswith("_subnets") and isinstance(value, list):
                outputs[f"{name}_cidr_blocks"] = value
                outputs[name] = [f"subnet-{_digest(key + '/' + str(cidr))}" for cidr in value]

        if rtype == "alb":
            outputs["dns_name"] = f"{declaration.inputs.get('name', declaration.name)}-{digest[:8]}.{self.region}.elb.amazonaws.com"
        elif rtype == "data_ssm_parameter":
            outputs["value"] = f"ami-{digest}"
        elif rtype == "data_iam_policy_document":
            outputs["json"] = json.dumps(
                {"Version": "2012-10-17", "Statement": declaration.inputs.get("statement", [])},
                sort_keys=True,
            )
        elif rtype == "data_caller_identity":
            outputs["account_id"] = self.account_id

        return outputs


def _digest(value: str) -> str:
    return hashlib.sha1(value.encode("utf-8")).hexdigest()[:17]
