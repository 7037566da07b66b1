from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime
from backoffice.base_microservice import Base


class Service(Base):
    """Service offered by the business, managed from the admin panel."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    price = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
