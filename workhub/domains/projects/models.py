# workhub/domains/projects/models.py
from typing import Any, Optional

from workhub.shared.permissions.models import (
    ProjectAccess,
    ProjectRoleAssignment,
    ProjectRoleTemplate,
)

__all__ = [
    "ProjectAccess",
    "ProjectRoleAssignment",
    "ProjectRoleTemplate",
    "role_template",
]


def role_template(role: Any) -> Optional[ProjectRoleTemplate]:
    """
    Template a project role row is based on, read from its `template` column.
    Custom roles have none, whatever they are named.
    """
    raw = getattr(role, "template", None)
    if not raw:
        return None
    try:
        return ProjectRoleTemplate(str(raw).strip().upper())
    except ValueError:
        return None
