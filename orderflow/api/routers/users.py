from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from orderflow.data.database import get_db
from orderflow.domain.errors import OrderFlowError
from orderflow.domain.schemas import UserCreate, UserRead
from orderflow.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


def get_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


@router.post("/", response_model=UserRead)
def create_user(payload: UserCreate, svc: UserService = Depends(get_service)):
    try:
        return svc.create_user(payload)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, svc: UserService = Depends(get_service)):
    try:
        return svc.get_user(user_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
