from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from orderflow.data.database import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    # adres powiadomien o statusie pozycji
    email = Column(String, nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
