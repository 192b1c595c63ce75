"""API Dependencies - Authentication"""
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from domain.auth import User, UserInDB
from infrastructure.security import decode_access_token, get_password_hash
from api.schemas import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)

# Mock database for users
# In production, this would be a database call
_fake_users_db = {
    "admin": {
        "username": "admin",
        "full_name": "Admin User",
        "email": "admin@example.com",
        "plain_password": "admin123",  # Will be hashed on first access
        "disabled": False,
        "is_admin": True,
        "user_id": "123e4567-e89b-12d3-a456-426614174000"
    },
    "frontdesk": {
        "username": "frontdesk",
        "full_name": "Front Desk",
        "email": "frontdesk@example.com",
        "plain_password": "frontdesk123",
        "disabled": False,
        "is_admin": False,
        "user_id": "123e4567-e89b-12d3-a456-426614174001"
    }
}

fake_users_db = _fake_users_db

# Cache for hashed passwords
_password_hash_cache = {}

def _get_hashed_password(username: str) -> str:
    """Lazily hash passwords on first access"""
    if username not in _password_hash_cache:
        user = _fake_users_db.get(username)
        if user and "plain_password" in user:
            _password_hash_cache[username] = get_password_hash(user["plain_password"])
    return _password_hash_cache.get(username, "")

def get_user(db, username: str) -> Optional[UserInDB]:
    if username in db:
        user_dict = db[username].copy()
        if "plain_password" in user_dict:
            user_dict["hashed_password"] = _get_hashed_password(username)
            del user_dict["plain_password"]
        return UserInDB(**user_dict)
    return None

def _user_from_token(token: str) -> Optional[UserInDB]:
    try:
        payload = decode_access_token(token)
    except JWTError:
        return None
    username = payload.get("sub")
    if username is None:
        return None
    token_data = TokenData(username=username)
    return get_user(_fake_users_db, username=token_data.username)

async def get_current_user(token: str = Depends(oauth2_scheme)):
    user = _user_from_token(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

async def get_current_active_user(current_user: User = Depends(get_current_user)):
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user

async def get_current_admin_user(current_user: User = Depends(get_current_active_user)):
    if not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Administrator privileges required")
    return current_user

async def get_optional_user(token: Optional[str] = Depends(optional_oauth2_scheme)) -> Optional[User]:
    """User for routes that are public but show more to operators"""
    if not token:
        return None
    user = _user_from_token(token)
    if user is None or user.disabled:
        return None
    return user
