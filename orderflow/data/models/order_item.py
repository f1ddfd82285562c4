from sqlalchemy import Column, Integer, ForeignKey, String, Numeric
from sqlalchemy.orm import relationship

from orderflow.data.database import Base


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, nullable=False)

    name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # cena po rabacie (faktycznie zaplacona)
    original_price = Column(Numeric(10, 2), nullable=False)  # cena przed rabatem, do korekt zwrotow
    image = Column(String, nullable=True)
    size = Column(String, nullable=True)

    status = Column(String, nullable=False, default="Pending")
    rejection_reason = Column(String, nullable=True)
    return_reason = Column(String, nullable=True)

    order = relationship("OrderModel", back_populates="items")
