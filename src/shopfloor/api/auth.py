"""Auth API — registration, login, logout.

Learn: Routes for the session lifecycle:
- POST /register → create a credential record
- POST /login → verify credentials, bind the username into a fresh session
- GET /login → who (if anyone) this session belongs to
- POST /logout → destroy the session and close its live sockets

Bodies are accepted as JSON or as a classic HTML form post.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import ValidationError

from shopfloor.auth.dependencies import (
    SessionIdentity,
    clear_session_cookie,
    get_app_state,
    get_current_user,
    get_session,
    set_session_cookie,
)
from shopfloor.config import settings
from shopfloor.errors import AlreadyRegistered, AuthError
from shopfloor.schemas.user import Credentials, Identity, LoginState, LogoutResult

router = APIRouter()

INVALID_CREDENTIALS = "Unknown user or wrong password"


async def read_credentials(request: Request) -> Credentials:
    """Parse {username, password} from a JSON body or a form post."""
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            raw = await request.json()
        else:
            raw = dict(await request.form())
    except ValueError:
        raise HTTPException(status_code=422, detail="Malformed request body")
    if not isinstance(raw, dict):
        raise HTTPException(status_code=422, detail="Expected an object")
    try:
        body = Credentials.model_validate(raw)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    if len(body.password) < settings.min_password_length:
        raise HTTPException(
            status_code=422,
            detail=f"Password must be at least {settings.min_password_length} characters",
        )
    return body


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=Identity, status_code=201)
async def register(request: Request, body: Credentials = Depends(read_credentials)):
    """Create a new account. Does not log in."""
    try:
        return await get_app_state(request).auth.register(body.username, body.password)
    except AlreadyRegistered:
        raise HTTPException(status_code=409, detail="Username already registered")


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=Identity)
async def login(
    request: Request,
    response: Response,
    body: Credentials = Depends(read_credentials),
    session: SessionIdentity = Depends(get_session),
):
    """Login with username and password → session cookie."""
    try:
        identity = await get_app_state(request).auth.login(body.username, body.password)
    except AuthError:
        # Same answer for unknown user and wrong password.
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)

    old_sid = session.sid
    sid = await session.bind_username(identity.username)
    set_session_cookie(response, sid)
    if old_sid:
        # Sockets opened under the replaced session lose their identity.
        await get_app_state(request).coordinator.revoke_session(old_sid)
    return identity


@router.get("/login", response_model=LoginState)
async def login_state(session: SessionIdentity = Depends(get_session)):
    if session.is_authenticated:
        return LoginState(authenticated=True, username=session.username)
    return LoginState(authenticated=False)


# ─── Logout ──────────────────────────────────────────────


@router.post("/logout", response_model=LogoutResult)
async def logout(
    request: Request,
    response: Response,
    identity: Identity = Depends(get_current_user),
    session: SessionIdentity = Depends(get_session),
):
    sid = session.sid
    await session.clear()
    clear_session_cookie(response)
    if sid:
        await get_app_state(request).coordinator.revoke_session(sid)
    return LogoutResult(username=identity.username)
