from fastapi import APIRouter, Depends

from gallery.auth import get_current_user
from gallery.dependencies.dependencies import get_user_directory
from gallery.users.directory import User, UserDirectory, UserProfile

router = APIRouter(
    prefix="/users",
    tags=["users"]
)

@router.get("/profile", response_model=UserProfile)
def own_profile(current_user: User = Depends(get_current_user)):
    """Profile of the authenticated user."""
    return UserProfile.from_user(current_user)

@router.get("/{username}", response_model=UserProfile)
def public_profile(username: str, users: UserDirectory = Depends(get_user_directory)):
    """Public artist profile."""
    return UserProfile.from_user(users.get_by_username(username))
