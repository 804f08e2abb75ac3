from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.ext.hybrid import hybrid_property

from ..database import Base


class Project(Base):
    """Projects owned by users.

    An original project has ``origin == id``. A package is split from the
    project named by ``origin`` and handed to another owner.
    """

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    origin = Column(Integer, ForeignKey("projects.id"), index=True, nullable=False)
    owner = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    title = Column(String(255), default="", nullable=False)

    @hybrid_property
    def is_package(self) -> bool:
        return self.origin != self.id
