"""001 – Leave engine schema: enums, leave_requests, audit_trail, overlap guard.

Revision ID: 001_leave_engine
Revises:
Create Date: 2026-10-17 10:00:00.000000+00:00
"""

from alembic import op

# Revision identifiers
revision = "001_leave_engine"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    (
        "leave_type",
        ["annual", "sick", "maternity", "paternity", "emergency", "other"],
    ),
    ("leave_status", ["pending", "approved", "rejected", "cancelled"]),
    ("work_arrangement", ["no_coverage", "colleague_coverage", "postponed"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')
    # UUID equality inside a GiST exclusion constraint
    op.execute('CREATE EXTENSION IF NOT EXISTS "btree_gist"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id                    UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            requester_id          UUID NOT NULL,
            leave_type            leave_type NOT NULL,
            start_date            DATE NOT NULL,
            end_date              DATE NOT NULL,
            total_days            INTEGER NOT NULL,
            reason                TEXT NOT NULL,
            status                leave_status NOT NULL DEFAULT 'pending',
            applied_at            TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            decided_at            TIMESTAMPTZ,
            decided_by            UUID,
            rejection_reason      TEXT,
            cancelled_at          TIMESTAMPTZ,
            cancelled_by          UUID,
            cancellation_reason   TEXT,
            work_arrangement      work_arrangement NOT NULL DEFAULT 'no_coverage',
            covering_employee_id  UUID,
            emergency_contact     JSONB,
            notes                 TEXT,
            created_at            TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at            TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_leave_dates_ordered CHECK (end_date >= start_date),
            CONSTRAINT ck_leave_total_days_positive CHECK (total_days >= 1)
        )
    """)
    op.execute(
        "CREATE INDEX ix_leave_requests_requester_status"
        " ON leave_requests(requester_id, status)"
    )
    op.execute("CREATE INDEX ix_leave_requests_status ON leave_requests(status)")
    op.execute(
        "CREATE INDEX ix_leave_requests_dates ON leave_requests(start_date, end_date)"
    )
    op.execute("CREATE INDEX ix_leave_requests_leave_type ON leave_requests(leave_type)")

    # Pending/approved ranges of one requester may not share a day
    op.execute("""
        ALTER TABLE leave_requests
            ADD CONSTRAINT ex_leave_requests_no_overlap
            EXCLUDE USING gist (
                requester_id WITH =,
                daterange(start_date, end_date, '[]') WITH &&
            )
            WHERE (status IN ('pending', 'approved'))
    """)

    # ── 2. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id     UUID,
            action       VARCHAR(50) NOT NULL,
            entity_type  VARCHAR(50) NOT NULL,
            entity_id    UUID NOT NULL,
            old_values   JSONB,
            new_values   JSONB,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_actor_id ON audit_trail(actor_id)")
    op.execute(
        "CREATE INDEX ix_audit_trail_entity ON audit_trail(entity_type, entity_id)"
    )
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")
    op.execute("CREATE INDEX ix_audit_trail_action ON audit_trail(action)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for t in ("audit_trail", "leave_requests"):
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
