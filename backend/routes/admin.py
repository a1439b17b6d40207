# backend/routes/admin.py
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from typing import List, Optional, Literal
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from utils.tokenJWT import role_required, ADMIN
from utils.audit import write_log, client_ip
from utils.pagination import paginate
from schemas.user import RoleUpdate, UserResponse
from schemas.common import ApiResponse

router = APIRouter(tags=["Admin"])


# Retrieve a list of users with filtering, sorting, and pagination (Admin only)
@router.get("/users", response_model=ApiResponse[List[UserResponse]])
def get_all_users(
    q: Optional[str] = Query(None, description="Search by e-mail"),
    last_name: Optional[str] = Query(None, description="Search by last name"),
    role: Optional[str] = Query(None, description="Filter by role"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    sort_by: Literal["id", "email", "role", "first_name", "last_name"] = "id",
    order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN)),
):
    query = db.query(User)

    # Filter by email
    if q:
        query = query.filter(User.email.ilike(f"%{q.lower()}%"))

    # Filter by role
    if role:
        query = query.filter(User.role == role.upper())

    # Filter by last name
    if last_name:
        query = query.filter(User.last_name.ilike(f"%{last_name}%"))

    # Apply sorting based on selected field and order
    sort_map = {
        "id": User.id,
        "email": User.email,
        "role": User.role,
        "first_name": User.first_name,
        "last_name": User.last_name,
    }
    col = sort_map.get(sort_by, User.id)
    query = query.order_by(col.asc() if order == "asc" else col.desc())

    users, pagination = paginate(query, page, page_size)
    return {"success": True, "data": users, "pagination": pagination}


# Update user role (Admin only)
@router.put("/users/{user_id}/role", response_model=ApiResponse[UserResponse])
def update_user_role(
    user_id: int,
    new_role: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN)),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    old_role = user.role
    user.role = new_role.role
    db.commit()
    db.refresh(user)

    write_log(db, user_id=current_user.id, action="USER_ROLE_UPDATE", resource="users", entity_id=user.id,
              ip=client_ip(request), meta={"old": old_role, "new": user.role})
    return {"success": True, "data": user, "message": f"User {user.email} role updated to {user.role}"}


# Deactivate a user account (Admin only); history rows keep pointing at it
@router.delete("/users/{user_id}", response_model=ApiResponse[UserResponse])
def deactivate_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN)),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    # Prevent self-deactivation
    if user.id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account")

    user.is_active = False
    db.commit()
    db.refresh(user)

    write_log(db, user_id=current_user.id, action="USER_DEACTIVATE", resource="users", entity_id=user.id,
              ip=client_ip(request), meta={"email": user.email})
    return {"success": True, "data": user, "message": f"User {user.email} has been deactivated"}
