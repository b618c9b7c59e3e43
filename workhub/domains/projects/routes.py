# workhub/domains/projects/routes.py
from fastapi import APIRouter, Depends

from workhub.core.cache import AccessCache, get_access_cache
from workhub.core.database import PrismaClient, get_db
from workhub.domains.auth.dependencies import get_current_user
from workhub.domains.auth.models import User
from workhub.domains.projects.models import ProjectAccess
from workhub.domains.projects.service import ProjectAccessResolver
from workhub.shared.exceptions import ResourceNotFoundError

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.get(
    "/{project_id}/access",
    response_model=ProjectAccess,
    operation_id="getProjectAccess",
)
async def get_project_access(
    project_id: str,
    user: User = Depends(get_current_user),
    db: PrismaClient = Depends(get_db),
    cache: AccessCache = Depends(get_access_cache),
) -> ProjectAccess:
    resolver = ProjectAccessResolver(db, cache)
    access = await resolver.resolve(user.id, project_id)
    if not access.project_exists:
        raise ResourceNotFoundError("Project")
    return access
