"""Initial migration - enable extensions.

Revision ID: 001
Revises:
Create Date: 2026-01-02 18:00:00.000000

"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    # gen_random_uuid() for primary keys
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')


def downgrade() -> None:
    """Downgrade database schema."""
    op.execute('DROP EXTENSION IF EXISTS "pgcrypto"')
