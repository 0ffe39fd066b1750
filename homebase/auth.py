import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import AUTH_JWT_ALGORITHM, AUTH_JWT_AUDIENCE, AUTH_JWT_SECRET
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer()

# Profiles created before their owner has signed in carry this auth uid prefix
PENDING_AUTH_UID_PREFIX = "pending-"


def verify_access_token(token: str) -> dict:
    """
    Verify an access token issued by the hosted auth service.
    Tokens are HS256 JWTs signed with the project's JWT secret.
    """
    try:
        payload = jose_jwt.decode(
            token,
            AUTH_JWT_SECRET,
            algorithms=[AUTH_JWT_ALGORITHM],
            audience=AUTH_JWT_AUDIENCE,
        )
    except ExpiredSignatureError as e:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"⚠️ Token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token") from e

    if not payload.get("sub"):
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return payload


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from bearer token, creating the profile on first sign-in"""

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, token length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    claims = verify_access_token(token)
    auth_uid = claims["sub"]
    email = claims.get("email")
    name = (claims.get("user_metadata") or {}).get("full_name", "")

    user = db.query(User).filter(User.auth_uid == auth_uid).first()
    if user:
        logger.debug(f"✅ User authenticated: {user.email}")
        return user

    if not email:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    existing_user = db.query(User).filter(User.email == email).first()
    if existing_user:
        # Only placeholder profiles from a partner application can be claimed
        if not (existing_user.auth_uid or "").startswith(PENDING_AUTH_UID_PREFIX):
            logger.warning(f"⚠️ Auth uid {auth_uid} tried to claim existing profile {email}")
            raise HTTPException(
                status_code=409,
                detail="This email is already registered. Please sign in with your existing account.",
            )
        logger.info(f"🔄 Linking pending profile {email} to auth uid {auth_uid}")
        existing_user.auth_uid = auth_uid
        if name and not existing_user.full_name:
            existing_user.full_name = name
        db.commit()
        db.refresh(existing_user)
        return existing_user

    logger.info(f"🆕 Creating new user: {email}")
    user = User(auth_uid=auth_uid, email=email, full_name=name, role="homeowner")
    db.add(user)
    try:
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        if "unique" in str(e).lower() or "duplicate key" in str(e).lower():
            raise HTTPException(
                status_code=409,
                detail="This email is already registered. Please sign in with your existing account.",
            ) from e
        raise
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow only platform admins"""
    if not user.is_admin:
        logger.warning(f"⚠️ User {user.email} attempted admin-only action")
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
