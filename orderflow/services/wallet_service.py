# orderflow/services/wallet_service.py
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from orderflow.repos.wallet_repo import WalletRepo
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)

CREDIT = "credit"
DEBIT = "debit"


class WalletService:
    """
    Ksiega portfela: saldo + dopisywane transakcje.
    post() nie commituje - zapis wchodzi w transakcje wywolujacego.
    """

    def __init__(self, db: Session):
        self.repo = WalletRepo(db)

    def get_balance(self, user_id: int) -> Decimal:
        wallet = self.repo.get_wallet(user_id)
        return wallet.balance if wallet else Decimal("0")

    def post(self, user_id: int, amount: Decimal, type_: str, description: str) -> bool:
        amount = Decimal(amount)
        if amount <= 0:
            return True

        wallet = self.repo.get_or_create_wallet(user_id)

        if type_ == DEBIT:
            if self.repo.debit_if_covered(wallet.id, amount) == 0:
                logger.info(f"Wallet debit {amount} rejected for user {user_id}: balance too low")
                return False
        elif type_ == CREDIT:
            if self.repo.credit(wallet.id, amount) == 0:
                return False
        else:
            raise ValueError(f"Unknown wallet posting type: {type_}")

        self.repo.add_transaction(wallet.id, type_, amount, description)
        logger.info(f"Wallet {type_} {amount} for user {user_id}: {description}")
        return True

    def get_wallet(self, user_id: int) -> Dict[str, Any]:
        wallet = self.repo.get_wallet(user_id)
        if not wallet:
            return {"user_id": user_id, "balance": Decimal("0"), "transactions": []}

        return {
            "user_id": user_id,
            "balance": wallet.balance,
            "transactions": [
                {
                    "type": t.type,
                    "amount": t.amount,
                    "description": t.description,
                    "created_at": t.created_at,
                }
                for t in self.repo.list_transactions(wallet.id)
            ],
        }
