# invoicer/routers/clients.py
from typing import List

from fastapi import APIRouter, Depends

from ..deps import get_profile, get_store
from ..models import Client, ClientIn, Profile
from ..store import SupabaseStore

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=List[Client])
def list_clients(profile: Profile = Depends(get_profile), store: SupabaseStore = Depends(get_store)):
    return store.list_clients(profile.company_id)


@router.post("", response_model=Client)
def create_client(payload: ClientIn, profile: Profile = Depends(get_profile), store: SupabaseStore = Depends(get_store)):
    return store.insert_client({"company_id": profile.company_id, **payload.model_dump()})
