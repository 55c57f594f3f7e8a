from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.sql import func
from app.db.session import Base

# Largest value a portable INTEGER primary key can hold
MAX_ID = 2 ** 31 - 1


def is_storable_id(value: int) -> bool:
    return 0 < value <= MAX_ID


class BaseModel(Base):
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<{type(self).__name__} id={self.id}>"
