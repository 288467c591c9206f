# invoicer/routers/profile.py
from fastapi import APIRouter, Depends

from ..auth import CurrentUser
from ..deps import get_current_user, get_store
from ..errors import NotFoundError
from ..models import Profile
from ..store import SupabaseStore

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=Profile)
def read_profile(user: CurrentUser = Depends(get_current_user), store: SupabaseStore = Depends(get_store)):
    profile = store.get_profile(user.id)
    if profile is None:
        raise NotFoundError("Profile not found")
    return profile
