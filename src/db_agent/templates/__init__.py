"""
Templates Module
================

Pure renderers from validated step details to source text.
"""

from db_agent.templates.api_route import render_api_route
from db_agent.templates.component import (
    ComponentUpdate,
    apply_component_update,
    component_name_from_path,
    render_new_component,
)
from db_agent.templates.schema import render_schema

__all__ = [
    "render_schema",
    "render_api_route",
    "render_new_component",
    "apply_component_update",
    "component_name_from_path",
    "ComponentUpdate",
]
