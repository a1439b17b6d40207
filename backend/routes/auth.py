# backend/routes/auth.py
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from sqlalchemy import func

from utils.hashing import get_password_hash, verify_password
from utils.tokenJWT import create_access_token, get_current_user, ADMIN, STAFF
from utils.audit import write_log, client_ip
from models import users as models
from schemas import user as schemas
from schemas.common import ApiResponse
from database import get_db

router = APIRouter(tags=["Auth"])

# Register a new user; the very first account becomes the administrator
@router.post("/register", response_model=ApiResponse[schemas.UserResponse])
def register(user: schemas.UserCreate, request: Request, db: Session = Depends(get_db)):
    # Normalize email input
    normalized_email = user.email.strip().lower()

    # Check for existing user
    db_user = db.query(models.User).filter(func.lower(models.User.email) == normalized_email).first()
    if db_user:
        write_log(
            db,
            user_id=None,
            action="REGISTER",
            resource="auth",
            status="FAIL",
            ip=client_ip(request),
            meta={"email": user.email, "reason": "Email exists"},
        )
        raise HTTPException(status_code=400, detail="Email already registered")

    role = ADMIN if db.query(models.User).count() == 0 else STAFF

    # Create new user instance with hashed password
    new_user = models.User(
        email=normalized_email,
        password_hash=get_password_hash(user.password),
        role=role,
        first_name=user.first_name,
        last_name=user.last_name,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    # Log successful registration event
    write_log(db, user_id=new_user.id, action="REGISTER", resource="auth", entity_id=new_user.id,
              ip=client_ip(request), meta={"email": new_user.email, "role": role})

    return {"success": True, "data": new_user, "message": "User registered"}


# Authenticate user and issue JWT token
@router.post("/login", response_model=ApiResponse[schemas.Token])
def login(payload: schemas.UserLogin, request: Request, db: Session = Depends(get_db)):
    db_user = db.query(models.User).filter(models.User.email == payload.email.strip().lower()).first()

    # Validate credentials and log failure on error
    if not db_user or not db_user.is_active or not verify_password(payload.password, db_user.password_hash):
        write_log(db, user_id=(db_user.id if db_user else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=client_ip(request), meta={"email": payload.email})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    # Generate access token
    access_token = create_access_token(data={"sub": db_user.email, "role": db_user.role})

    # Log successful login event
    write_log(db, user_id=db_user.id, action="LOGIN", resource="auth",
              ip=client_ip(request), meta={"email": db_user.email})

    return {"success": True, "data": {"access_token": access_token, "token_type": "bearer"}}


# Retrieve current authenticated user details
@router.get("/me", response_model=ApiResponse[schemas.UserResponse])
def me(current_user: models.User = Depends(get_current_user)):
    return {"success": True, "data": current_user}
