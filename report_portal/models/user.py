from sqlalchemy import Column, Integer, String, TIMESTAMP
from sqlalchemy.sql import func
from ..database import Base
from pydantic import BaseModel, ConfigDict
from typing import Optional


# -------------------------------
# SQLAlchemy ORM Model
# -------------------------------
class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), default="officer")
    created_at = Column(TIMESTAMP, server_default=func.now())


# -------------------------------
# Pydantic Schemas (for FastAPI)
# -------------------------------

# -------- Requests --------
class AdminLoginRequest(BaseModel):
    username: str
    password: str


# -------- Responses --------
class AdminLoginResponse(BaseModel):
    admin_id: int
    username: str
    role: Optional[str] = "officer"
    token: str

    # Pydantic V2 Config
    model_config = ConfigDict(from_attributes=True)
