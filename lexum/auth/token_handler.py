import os
from datetime import datetime, timezone, timedelta

from fastapi.requests import Request

import jwt
from jwt.exceptions import InvalidTokenError

from fastapi import HTTPException

from lexum.logging_config import setup_logger
logger = setup_logger(__name__, "token.log")


class TokenHandler:

    @staticmethod
    def generate_access_token(user_data: dict) -> str:
        """Issued by the account service; kept here for local tooling and tests."""
        try:
            encode = user_data.copy()
            encode.update(({"exp": datetime.now(timezone.utc) + timedelta(days=2)}))
            secret_key = os.getenv('JWT_SECRET_KEY')
            algorithm = os.getenv('JWT_ALGORITHM', 'HS256')
            return jwt.encode(encode, secret_key, algorithm)
        except Exception as ex:
            logger.error(f"Failed to created new access token {ex}")
            raise HTTPException(status_code=500, detail=f"Failed to created new access token {ex}")

    @staticmethod
    def verify_access_token(req: Request) -> dict:
        header = req.headers.get('Authorization') or ''
        parts = header.split(' ')
        if len(parts) != 2 or parts[0].lower() != 'bearer' or not parts[1]:
            raise HTTPException(status_code=401, detail='Authorization Error')

        try:
            secret_key = os.getenv('JWT_SECRET_KEY')
            algorithm = os.getenv('JWT_ALGORITHM', 'HS256')
            payload = jwt.decode(parts[1], secret_key, algorithms=[algorithm])
        except InvalidTokenError as ex:
            logger.warning(f"Rejected access token: {ex}")
            raise HTTPException(status_code=401, detail=f'Authorization Error {ex}')

        try:
            int(payload.get('sub'))
        except (TypeError, ValueError):
            raise HTTPException(status_code=401, detail="Invalid token: missing subject")
        return payload
