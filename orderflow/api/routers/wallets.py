from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from orderflow.data.database import get_db
from orderflow.domain.schemas import WalletOut
from orderflow.services.wallet_service import WalletService

router = APIRouter(prefix="/wallets", tags=["wallets"])


@router.get("/{user_id}", response_model=WalletOut)
def get_wallet(user_id: int, db: Session = Depends(get_db)):
    return WalletService(db).get_wallet(user_id)
