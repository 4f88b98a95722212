"""
Rendering of unit descriptors into systemd unit text.

Rendering takes two passes over the same context. Descriptor fields may embed
other fields as {{{{field}}}} macros (for example ExecStop referencing the
container ID file). Pass one expands the unit template, copying those macros
into the text; pass two expands the result and resolves them. A third pass is
never needed: anything left over means the descriptor was built wrong.

Unusual delimiters keep systemd specifiers (%n, %t) and shell braces out of
Jinja's way.
"""

from dataclasses import fields
from typing import Any, Dict

import structlog
from jinja2 import BaseLoader, Environment, StrictUndefined
from jinja2 import TemplateError as JinjaTemplateError

from .errors import TemplateError
from .models import UnitDescriptor

logger = structlog.get_logger(__name__)

MACRO_START = "{{{{"

_ENV = Environment(
    loader=BaseLoader(),
    variable_start_string="{{{{",
    variable_end_string="}}}}",
    block_start_string="{{{{%",
    block_end_string="%}}}}",
    comment_start_string="{{{{#",
    comment_end_string="#}}}}",
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    autoescape=False,
    undefined=StrictUndefined,
)

HEADER_TEMPLATE = """# {{{{service_name}}}}.service
{{{{% if not generate_no_header %}}}}
# autogenerated by podunit {{{{generator_version}}}}
{{{{% if timestamp %}}}}
# {{{{timestamp}}}}
{{{{% endif %}}}}
{{{{% endif %}}}}

[Unit]
Description=Podman {{{{service_name}}}}.service
Documentation=man:podman-generate-systemd(1)
Wants=network-online.target
After=network-online.target
RequiresMountsFor={{{{run_root}}}}
"""

CONTAINER_TEMPLATE = HEADER_TEMPLATE + """{{{{% if bound_services %}}}}
BindsTo={{{{bound_units}}}}
After={{{{bound_units}}}}
{{{{% endif %}}}}

[Service]
Environment={{{{env_variable}}}}=%n
{{{{% if extra_envs %}}}}
Environment={{{{extra_environment}}}}
{{{{% endif %}}}}
Restart={{{{restart_policy}}}}
TimeoutStopSec={{{{timeout_stop_sec}}}}
{{{{% if exec_start_pre %}}}}
ExecStartPre={{{{exec_start_pre}}}}
{{{{% endif %}}}}
ExecStart={{{{exec_start}}}}
{{{{% if exec_stop %}}}}
ExecStop={{{{exec_stop}}}}
{{{{% endif %}}}}
{{{{% if exec_stop_post %}}}}
ExecStopPost={{{{exec_stop_post}}}}
{{{{% endif %}}}}
{{{{% if pid_file %}}}}
PIDFile={{{{pid_file}}}}
{{{{% endif %}}}}
Type={{{{unit_type}}}}
{{{{% if notify_access %}}}}
NotifyAccess={{{{notify_access}}}}
{{{{% endif %}}}}

[Install]
WantedBy=multi-user.target default.target
"""


def template_context(descriptor: UnitDescriptor) -> Dict[str, Any]:
    """Flattens the descriptor into the names the template and macros use."""
    context = {f.name: getattr(descriptor, f.name) for f in fields(descriptor)}
    bound_services = sorted(descriptor.bound_services)
    context.update(
        unit_type=descriptor.unit_type.value,
        restart_policy=descriptor.restart_policy.value,
        timeout_stop_sec=descriptor.timeout_stop_sec,
        bound_services=bound_services,
        bound_units=" ".join(f"{service}.service" for service in bound_services),
        extra_environment=" ".join(descriptor.extra_envs),
    )
    return context


def _render_pass(source: str, context: Dict[str, Any], pass_name: str) -> str:
    try:
        return _ENV.from_string(source).render(**context)
    except JinjaTemplateError as e:
        logger.error(f"Unit template {pass_name} pass failed: {e}")
        raise TemplateError(f"error executing systemd service template ({pass_name} pass): {e}") from e


def render_unit(descriptor: UnitDescriptor, template: str = CONTAINER_TEMPLATE) -> str:
    """Renders the unit text of a descriptor.

    Raises:
        TemplateError: If either pass fails or macros survive the second pass
    """
    context = template_context(descriptor)
    expanded = _render_pass(template, context, "first")
    content = _render_pass(expanded, context, "second")
    if MACRO_START in content:
        raise TemplateError(f"unresolved macros after second pass in unit {descriptor.service_name}")
    return content
