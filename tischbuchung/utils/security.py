from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer

from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone
from tischbuchung.config import settings


# JWT
# Tokens stellt der Login-Dienst aus. Hier wird nur geprüft; create_access_token
# ist für Tools und Tests da.

def create_access_token(data: dict) -> str:
    to_encode = data.copy()
    to_encode['exp'] = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode['type'] = 'access'
    return jwt.encode(to_encode, settings.secret_key, settings.jwt_algorithm)

def decode_token(token: str, expected_type: str = None) -> dict:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        if expected_type and payload.get('type') != expected_type:
            return None
        return payload
    except JWTError:
        return None


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

def get_current_email(extracted_token: str = Depends(oauth2_scheme)) -> str:
    """
    Liefert die E-Mail des Aufrufers (Claim 'sub').
    Ob der User existiert und Mitglied des Lokals ist, prüfen die Services.
    """
    payload = decode_token(extracted_token, "access")
    if not payload:
        raise HTTPException(status_code=401, detail="Token ungültig")
    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Token ohne Benutzer")
    return email
