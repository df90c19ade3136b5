import logging
from typing import Any, Dict, Literal

from fastapi import APIRouter, Depends, HTTPException, status, Request
from pydantic import Field

from backend.utils.data_manager import UserStore, public_view
from .auth import RegisterRequest, get_user_store, register_account, require_role

logger = logging.getLogger(__name__)

router = APIRouter()

get_admin_user = require_role("admin")


class AdminCreateUser(RegisterRequest):
    role: Literal["user", "driver", "admin"] = Field(default="user")


@router.get("/stats", tags=["Admin"])
async def get_admin_stats(request: Request, current_user: Any = Depends(get_admin_user)):
    users = request.app.state.users.all()
    registry = request.app.state.registry
    return {
        "total_users": sum(1 for u in users if u["role"] == "user"),
        "total_drivers": sum(1 for u in users if u["role"] == "driver"),
        "total_admins": sum(1 for u in users if u["role"] == "admin"),
        "tracked_buses": len(registry.snapshot()),
        "connected_observers": registry.subscriber_count,
    }


@router.get("/users", tags=["Admin"])
async def get_all_users(store: UserStore = Depends(get_user_store), current_user: Any = Depends(get_admin_user)):
    return [public_view(user) for user in store.all()]


@router.post("/users", status_code=status.HTTP_201_CREATED, tags=["Admin"])
async def add_user(
    new_user: AdminCreateUser,
    store: UserStore = Depends(get_user_store),
    current_user: Dict[str, Any] = Depends(get_admin_user),
):
    user = register_account(store, new_user, role=new_user.role, label="User")
    return public_view(user)


@router.delete("/users/{user_id}", tags=["Admin"])
async def delete_user(
    user_id: str,
    store: UserStore = Depends(get_user_store),
    current_user: Dict[str, Any] = Depends(get_admin_user),
):
    if not store.delete(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    logger.info("Admin %s deleted user %s", current_user["id"], user_id)
    return {"message": "User deleted successfully"}
