import logging
import secrets

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from starlette.status import HTTP_401_UNAUTHORIZED

from joinlens.config import BasicAuthSettings

logger = logging.getLogger(__name__)

_security = HTTPBasic(realm="joinlens", auto_error=True)


def _matches(given: str, expected: str) -> bool:
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def require_basic_auth(
    request: Request,
    credentials: HTTPBasicCredentials = Depends(_security),
) -> str:
    """Guard for the analysis routes; credentials come from the `auth` config section."""
    cfg: BasicAuthSettings = request.app.state.settings.auth
    user_ok = _matches(credentials.username, cfg.username)
    password_ok = _matches(credentials.password, cfg.password)
    if not (user_ok and password_ok):
        logger.warning("Rejected credentials for user %r", credentials.username)
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": 'Basic realm="joinlens"'},
        )
    return credentials.username
