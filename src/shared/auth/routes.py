"""Admin authentication routes: login and first-time setup."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status, Request, Response
from sqlalchemy.orm import Session

from src.shared.auth.auth import check_login, create_admin_token, hash_password
from src.shared.auth.database import get_db, AdminUser
from src.shared.auth.schemas import LoginRequest, MessageResponse, SetupRequest, TokenResponse
from src.shared.security.dependencies import enforce_rate_limit
from src.shared.security.outcomes import RouteClass

router = APIRouter(prefix="/api/auth", tags=["auth"])

MIN_ADMIN_PASSWORD_LENGTH = 8


@router.post("/login", response_model=TokenResponse)
async def login(
    request: Request,
    response: Response,
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """Log in the site owner and return a bearer token."""
    enforce_rate_limit(request, response, RouteClass.LOGIN)

    email = login_data.email.strip().lower()
    admin = db.query(AdminUser).filter(AdminUser.email == email).first()

    # Same message and same hashing cost for unknown email and wrong password
    if not check_login(login_data.password, admin.password_hash if admin else None):
        logging.warning("Failed admin login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    admin.last_login = datetime.utcnow()
    db.commit()

    access_token = create_admin_token(admin.id, admin.email)
    return TokenResponse(access_token=access_token, email=admin.email)


@router.post("/setup", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def setup_admin(
    request: Request,
    response: Response,
    setup_data: SetupRequest,
    db: Session = Depends(get_db)
):
    """Create the first admin account. Refused once any admin exists."""
    enforce_rate_limit(request, response, RouteClass.LOGIN)

    if db.query(AdminUser).count() > 0:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin already exists"
        )

    if len(setup_data.password) < MIN_ADMIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_ADMIN_PASSWORD_LENGTH} characters"
        )

    admin = AdminUser(
        email=setup_data.email.strip().lower(),
        password_hash=hash_password(setup_data.password),
    )
    db.add(admin)
    db.commit()

    logging.info("Admin account created")
    return MessageResponse(message="Admin created successfully")
