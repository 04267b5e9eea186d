from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from config import SECRET_KEY, JWT_ALGORITHM
from models import Admin

http_bearer = HTTPBearer()


def decode_admin_token(token: str) -> str:
    """Return the admin username carried by a token, raising JWTError when invalid"""
    payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    username = payload.get("sub")
    if username is None:
        raise JWTError("Token has no subject")
    return username


async def get_admin_user(credentials: HTTPAuthorizationCredentials = Depends(http_bearer)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        username = decode_admin_token(credentials.credentials)
    except JWTError:
        raise credentials_exception

    admin = await Admin.find_one(Admin.username == username)
    if admin is None:
        raise credentials_exception
    if not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin account is disabled"
        )
    return admin
