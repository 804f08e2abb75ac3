"""create users and projects

Revision ID: 3c9a1f5e8b21
Revises: 
Create Date: 2026-10-19 09:12:40.518203

"""
from typing import Sequence, Union

from alembic import op
from accounts.database import Base
from accounts.models import project, user  # noqa: F401


# revision identifiers, used by Alembic.
revision: str = '3c9a1f5e8b21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema by creating the users and projects tables."""
    bind = op.get_bind()
    Base.metadata.create_all(bind)


def downgrade() -> None:
    """Downgrade schema by dropping the users and projects tables."""
    bind = op.get_bind()
    Base.metadata.drop_all(bind)
