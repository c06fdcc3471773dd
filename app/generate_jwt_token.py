#!/usr/bin/env python3
"""
Service JWT generator for calling the trigger endpoints (scheduler, S3 forwarder)
Usage: python generate_jwt_token.py [subject]
"""
import sys
import jwt
import os
from datetime import datetime, timezone, timedelta
from dotenv import load_dotenv
load_dotenv()

# Configuration
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_ISSUER = os.getenv("JWT_ISSUER", "task-integrator-auth")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "task-integrator-api")
TOKEN_TTL_MINUTES = int(os.getenv("TOKEN_TTL_MINUTES", "5"))


def generate_jwt_token(subject: str = "scheduler") -> str:
    """Generate a short-lived service token"""
    if not JWT_SECRET_KEY:
        raise SystemExit("JWT_SECRET_KEY is not set")

    now = datetime.now(timezone.utc)
    payload = {
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "sub": subject,
        "exp": int((now + timedelta(minutes=TOKEN_TTL_MINUTES)).timestamp()),
        "iat": int(now.timestamp()),
    }

    token = jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)

    print(f"Token: {token}")
    print(f"Expires: {now + timedelta(minutes=TOKEN_TTL_MINUTES)}")
    print(f"Authorization: Bearer {token}")
    return token


if __name__ == "__main__":
    generate_jwt_token(*sys.argv[1:2])
