"""
Shared dependency functions for FastAPI routers.
The session user is the verified (id, email, role) identity every router trusts.
"""
from fastapi import Request, HTTPException, Depends

from models.models import SENIOR_ROLES, ANALYTICS_ROLES


async def get_current_user(request: Request):
    """
    Dependency to get the currently authenticated user from session.
    Raises HTTPException if user is not authenticated.
    """
    user = request.session.get('user')
    if not user:
        raise HTTPException(status_code=401, detail="User not authenticated")
    return user


def require_roles(*roles, detail=None):
    """
    Build a dependency that only lets the listed roles through.
    Raises HTTPException 403 for any other role.
    """
    message = detail or f"Requires one of the roles: {', '.join(roles)}"

    async def dependency(user: dict = Depends(get_current_user)):
        if user.get("role") not in roles:
            raise HTTPException(status_code=403, detail=message)
        return user

    return dependency


# EB, EC and Core may create and manage content
require_senior = require_roles(*SENIOR_ROLES, detail="EB/EC/Core access required")

# The all-users analytics view reads everyone's records
require_analytics_viewer = require_roles(*ANALYTICS_ROLES, detail="EB/EC access required")
