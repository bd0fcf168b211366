import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Request, Depends
from fastapi.responses import RedirectResponse, JSONResponse
from authlib.integrations.starlette_client import OAuth, OAuthError

from config.config import OAUTH_CLIENT_ID, OAUTH_CLIENT_SECRET, OAUTH_METADATA_URL, FRONTEND_URL, ROLE_EMAILS
from database.DB import get_db
from helpers.RoleAllowList import resolve_role
from models.models import Email, Role

logger = logging.getLogger(__name__)

router = APIRouter()

# OAuth configuration
oauth = OAuth()
oauth.register(
    name='provider',
    client_id=OAUTH_CLIENT_ID,
    client_secret=OAUTH_CLIENT_SECRET,
    server_metadata_url=OAUTH_METADATA_URL,
    client_kwargs={'scope': 'openid email profile'}
)


@router.get('/login')
async def login(request: Request, role: str = None):
    """Start the OpenID sign-in; the requested role is checked on the way back."""
    if role is not None and role not in [r.value for r in Role]:
        return JSONResponse(status_code=400, content={"error": f"Unknown role '{role}'"})
    request.session['requested_role'] = role
    redirect_uri = request.url_for('auth')
    return await oauth.provider.authorize_redirect(request, redirect_uri)


@router.get('/auth')
async def auth(request: Request, db = Depends(get_db)):
    try:
        token = await oauth.provider.authorize_access_token(request)
    except OAuthError as e:
        logger.warning("OAuth callback rejected: %s", e.error)
        return JSONResponse(status_code=401, content={"error": "Authorization failed", "details": e.error})

    user_info = token.get('userinfo') or {}
    if not user_info.get('email'):
        return JSONResponse(status_code=401, content={"error": "No email returned by the identity provider"})

    email = Email(user_info['email'])
    requested_role = request.session.pop('requested_role', None)
    role = resolve_role(email, requested_role, ROLE_EMAILS)
    if role is None:
        logger.warning("Sign-in refused for %s (requested role %s)", email, requested_role)
        return JSONResponse(
            status_code=403,
            content={"error": "Access Denied: this email is not allowed to sign in with that role."}
        )

    name = user_info.get('name') or email.split('@')[0]
    await db.update(
        "users",
        {"email": email},
        {
            "$set": {"name": name, "role": role, "photoURL": user_info.get('picture')},
            "$setOnInsert": {"id": str(uuid.uuid4()), "email": email, "points": 0, "createdAt": datetime.utcnow()},
        },
        upsert=True
    )
    user = await db.find_one("users", {"email": email})

    request.session.clear()
    request.session['user'] = {
        "id": user["id"],
        "email": email,
        "name": user.get("name", name),
        "role": role
    }
    logger.info("%s signed in as %s", email, role)

    return RedirectResponse(url=f"{FRONTEND_URL}/{role.lower()}", status_code=302)


@router.get('/health')
async def health_check():
    """Simple health check endpoint"""
    return JSONResponse(content={"status": "healthy", "message": "Server is running"})


@router.get('/user/profile')
async def user_profile(request: Request):
    user = request.session.get('user')
    if user:
        return JSONResponse(content=user)
    return JSONResponse(status_code=401, content={"error": "User not authenticated"})


@router.get('/logout')
async def logout(request: Request):
    request.session.pop('user', None)
    return RedirectResponse(url=FRONTEND_URL or "/")
