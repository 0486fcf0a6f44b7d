"""booking overlap guard: EXCLUDE (postgres) / triggers (sqlite)

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

"""
from alembic import op

revision = '0002'
down_revision = '0001'
branch_labels = None
depends_on = None

_SQLITE_CHECK = """
BEGIN
    SELECT RAISE(ABORT, 'booking_overlap')
    WHERE EXISTS (
        SELECT 1 FROM mentor_bookings b
        WHERE b.mentor_id = NEW.mentor_id
          AND b.id IS NOT NEW.id
          AND b.status IN ('reserved', 'completed')
          AND b.start_time < NEW.end_time
          AND NEW.start_time < b.end_time
    );
END
"""

def upgrade():
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            "ALTER TABLE mentor_bookings ADD CONSTRAINT ex_bookings_mentor_overlap "
            "EXCLUDE USING gist (mentor_id WITH =, tsrange(start_time, end_time, '[)') WITH &&) "
            "WHERE (status IN ('reserved', 'completed'))"
        )
    elif bind.dialect.name == "sqlite":
        op.execute(
            "CREATE TRIGGER IF NOT EXISTS trg_bookings_no_overlap_insert "
            "BEFORE INSERT ON mentor_bookings "
            "WHEN NEW.status IN ('reserved', 'completed') " + _SQLITE_CHECK
        )
        op.execute(
            "CREATE TRIGGER IF NOT EXISTS trg_bookings_no_overlap_update "
            "BEFORE UPDATE OF mentor_id, start_time, end_time, status ON mentor_bookings "
            "WHEN NEW.status IN ('reserved', 'completed') " + _SQLITE_CHECK
        )

def downgrade():
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("ALTER TABLE mentor_bookings DROP CONSTRAINT IF EXISTS ex_bookings_mentor_overlap")
    elif bind.dialect.name == "sqlite":
        op.execute("DROP TRIGGER IF EXISTS trg_bookings_no_overlap_insert")
        op.execute("DROP TRIGGER IF EXISTS trg_bookings_no_overlap_update")
