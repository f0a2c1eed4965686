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
Frozen exported-output contracts shared between stacks.
"""
from typing import List, Union
from pydantic import BaseModel, ConfigDict

from .output_reference import OutputRef

StrValue = Union[OutputRef, str]
ListValue = Union[OutputRef, List[str]]


class StackExports(BaseModel):
    """
    Base for the fixed set of values a stack exposes to downstream stacks.
    Instances are immutable once built.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")


class BaseStackExports(StackExports):
    """
    Everything the base network stack makes available to application stacks.
    """
    vpc_id: StrValue
    public_subnets: ListValue
    private_subnets: ListValue
    database_subnets: ListValue
    public_security_group_id: StrValue
    app_security_group_id: StrValue
    data_security_group_id: StrValue
    ecs_cluster_name: StrValue
    table_name: StrValue
