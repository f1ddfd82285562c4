from sqlalchemy import Column, Integer, ForeignKey, Numeric, String, Boolean
from sqlalchemy.orm import relationship

from orderflow.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, nullable=False)
    size = Column(String, nullable=True)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # cena z momentu dodania
    saved = Column(Boolean, nullable=False, default=False)  # "zapisz na pozniej"

    cart = relationship("CartModel", back_populates="items")
