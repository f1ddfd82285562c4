# orderflow/repos/wallet_repo.py
from decimal import Decimal
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from orderflow.data.models.wallet import WalletModel, WalletTransactionModel


class WalletRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_wallet(self, user_id: int) -> WalletModel | None:
        return self.db.execute(
            select(WalletModel).where(WalletModel.user_id == user_id)
        ).scalar_one_or_none()

    def get_or_create_wallet(self, user_id: int) -> WalletModel:
        wallet = self.get_wallet(user_id)
        if wallet:
            return wallet
        wallet = WalletModel(user_id=user_id, balance=Decimal("0"))
        self.db.add(wallet)
        self.db.flush()
        return wallet

    def credit(self, wallet_id: int, amount: Decimal) -> int:
        result = self.db.execute(
            update(WalletModel)
            .where(WalletModel.id == wallet_id)
            .values(balance=WalletModel.balance + amount)
        )
        return result.rowcount

    def debit_if_covered(self, wallet_id: int, amount: Decimal) -> int:
        # warunkowy UPDATE - saldo nigdy nie spadnie ponizej zera
        result = self.db.execute(
            update(WalletModel)
            .where(WalletModel.id == wallet_id, WalletModel.balance >= amount)
            .values(balance=WalletModel.balance - amount)
        )
        return result.rowcount

    def add_transaction(self, wallet_id: int, type_: str, amount: Decimal, description: str) -> WalletTransactionModel:
        txn = WalletTransactionModel(wallet_id=wallet_id, type=type_, amount=amount, description=description)
        self.db.add(txn)
        self.db.flush()
        return txn

    def list_transactions(self, wallet_id: int) -> List[WalletTransactionModel]:
        return list(
            self.db.execute(
                select(WalletTransactionModel)
                .where(WalletTransactionModel.wallet_id == wallet_id)
                .order_by(WalletTransactionModel.id.desc())
            ).scalars()
        )
