# backend/vetclinic/auth.py
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from scheduler.errors import AuthenticationError
from scheduler.ports import TokenVerifier

from .database import get_db
from .store import SqlTokenVerifier

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_token_verifier(db: Session = Depends(get_db)):
    return SqlTokenVerifier(db)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: TokenVerifier = Depends(get_token_verifier),
):
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Unauthorized", code="NO_TOKEN")

    user = verifier.verify(credentials.credentials)
    if user is None:
        logger.warning("Rejected request with unknown bearer token")
        raise AuthenticationError("Invalid token", code="INVALID_TOKEN")
    return user
