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
Converters for writing per-stack manifests of a composed assembly.
"""
import json
import os
from typing import Any, Dict, List
from jinja2 import Template

from ..MANAGERS.composition_root import CompositionRoot
from ..MODELS.output_reference import render_value

PLAN_TEMPLATE = """\
Stack: {{ stack }} ({{ status }})
{% for node in nodes %}
{{ loop.index }}. {{ node.name }} [{{ node.resource_type }}]{% if node.depends_on %} after {{ node.depends_on | join(', ') }}{% endif %}
{% for key, value in node.inputs.items() %}    {{ key }} = {{ value }}
{% endfor %}{% endfor %}
{% if outputs %}Outputs:
{% for key, value in outputs.items() %}    {{ key }} = {{ value }}
{% endfor %}{% endif %}"""


class ManifestConverter:
    """
    Writes a JSON manifest and a readable plan for every stack of a root.
    """

    def __init__(self, root: CompositionRoot):
        """
        Initializes the manifest converter.

        :param root: The composition root to describe.
        """
        self.root = root
        self.template = Template(PLAN_TEMPLATE)

    def manifests(self) -> List[Dict[str, Any]]:
        """
        Describes every stack in realization order. Unresolved references
        are rendered as ``${stack.node.attribute}`` tokens.
        """
        manifests = []
        for stack, order in self.root.plan():
            nodes = []
            for node in order:
                nodes.append({
                    "name": node.name,
                    "resource_type": node.resource_type,
                    "depends_on": [
                        dep.name if dep.stack_name == stack.name else f"{dep.stack_name}/{dep.name}"
                        for dep in node.dependencies()
                    ],
                    "inputs": render_value(node.inputs),
                    "realized": node.realized,
                })
            manifests.append({
                "stack": stack.name,
                "status": "realized" if stack.realized else "planned",
                "nodes": nodes,
                "outputs": stack.rendered_outputs(),
            })
        return manifests

    def convert(self, output_dir: str = "tierstack.out"):
        """
        Generates ``<stack>.json`` and ``<stack>.plan.txt`` files.

        :param output_dir: The directory where manifests will be created.
        :return: The path to the output directory.
        """
        os.makedirs(output_dir, exist_ok=True)

        for manifest in self.manifests():
            name = manifest["stack"]
            with open(os.path.join(output_dir, f"{name}.json"), "w") as f:
                json.dump(manifest, f, indent=2, sort_keys=True, default=str)
            with open(os.path.join(output_dir, f"{name}.plan.txt"), "w") as f:
                f.write(self.template.render(**manifest))

        print(f"Stack manifests generated in {output_dir}")
        return output_dir
