from sqlalchemy import Boolean, Column, Integer, String

from ..database import Base


class User(Base):
    """SQLAlchemy model for user accounts."""

    __tablename__ = "users"
    # ids of deleted users are never handed out again
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    institute = Column(String(255), default="", nullable=False)
    admin = Column(Boolean, default=False, nullable=False)
    password_hash = Column(String(255))

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} admin={self.admin}>"
